import logging

import numpy as np
import pytest
import torch

from td3 import PersistenceError, TD3Agent, Transition


def weights_equal(a, b):
    return all(torch.equal(x, y) for x, y in zip(a.get_weights(), b.get_weights()))


def fill(agent, n):
    for i in range(n):
        state = np.full(8, 0.1 * i)
        agent.store_transition(Transition(state, state + 0.1, np.full(4, 0.5), 1.0, i % 3 == 0))


def test_twin_and_single_critics(make_config):
    assert len(TD3Agent(make_config()).critics) == 2
    single = TD3Agent(make_config(twin_critics=False))
    assert len(single.critics) == 1
    assert len(single.critic_targets) == 1


def test_targets_start_equal_without_aliasing(make_config):
    agent = TD3Agent(make_config())
    assert weights_equal(agent.actor, agent.actor_target)
    for critic, target in zip(agent.critics, agent.critic_targets):
        assert weights_equal(critic, target)

    with torch.no_grad():
        for p in agent.actor.parameters():
            p.add_(1.0)
    assert not weights_equal(agent.actor, agent.actor_target)


def test_non_finite_transition_dropped(make_config, caplog):
    agent = TD3Agent(make_config())
    bad = Transition(np.zeros(8), np.zeros(8), np.zeros(4), float('nan'))

    with caplog.at_level(logging.WARNING):
        assert not agent.store_transition(bad)
    assert len(agent.replay_buffer) == 0
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_train_step_waits_for_enough_data(make_config):
    agent = TD3Agent(make_config(batch_size=4))
    fill(agent, 4)
    assert agent.train_step(0) is None

    fill(agent, 1)
    info = agent.train_step(0)
    assert info is not None
    assert len(info.critic_losses) == 2
    assert info.actor_updated


def test_actor_update_is_delayed(make_config):
    agent = TD3Agent(make_config(actor_update_interval=2))
    fill(agent, 10)
    actor_before = agent.actor.get_weights()
    actor_target_before = agent.actor_target.get_weights()
    critic_target_before = agent.critic_targets[0].get_weights()

    info = agent.train_step(1)
    assert not info.actor_updated
    assert info.actor_loss is None
    assert all(torch.equal(p, b) for p, b in zip(agent.actor.get_weights(), actor_before))
    assert all(torch.equal(p, b) for p, b in zip(agent.actor_target.get_weights(), actor_target_before))
    assert all(torch.equal(p, b) for p, b in zip(agent.critic_targets[0].get_weights(), critic_target_before))
    # Critic 每一步都更新
    assert not weights_equal(agent.critics[0], agent.critic_targets[0])

    info = agent.train_step(2)
    assert info.actor_updated
    assert info.actor_loss is not None
    assert any(not torch.equal(p, b) for p, b in zip(agent.actor.get_weights(), actor_before))
    assert any(not torch.equal(p, b) for p, b in zip(agent.actor_target.get_weights(), actor_target_before))

    # 跳过的步复用上一次的 Actor loss
    assert agent.train_step(3).actor_loss == info.actor_loss


def test_greedy_selection_uses_policy(make_config):
    agent = TD3Agent(make_config())
    state = np.linspace(-1, 1, 8)
    expected = agent.actor.act(state)

    np.testing.assert_array_equal(agent.select_action(state, epsilon=0.0), expected)
    np.testing.assert_array_equal(agent.select_action(state, epsilon=1.0, explore=False), expected)


def test_full_exploration_is_random(make_config):
    agent = TD3Agent(make_config())
    state = np.zeros(8)
    actions = [agent.select_action(state, epsilon=1.0) for _ in range(5)]
    assert all(np.all(np.abs(a) <= 1.0) for a in actions)
    assert not np.allclose(actions[0], actions[1])


def test_reset_clears_buffer(make_config):
    agent = TD3Agent(make_config())
    fill(agent, 6)
    agent.reset()
    assert len(agent.replay_buffer) == 0
    assert agent.last_actor_loss is None


def test_save_and_load(make_config, tmp_path):
    agent = TD3Agent(make_config(seed=1))
    agent.save(tmp_path)
    assert (tmp_path / 'actor.pt').exists()
    assert (tmp_path / 'critic_1.pt').exists()
    assert (tmp_path / 'critic_2.pt').exists()

    other = TD3Agent(make_config(seed=2))
    assert not weights_equal(agent.actor, other.actor)
    other.load(tmp_path)
    assert weights_equal(agent.actor, other.actor)
    assert weights_equal(other.actor, other.actor_target)
    for a, b in zip(agent.critics, other.critics):
        assert weights_equal(a, b)


def test_partial_checkpoint_changes_nothing(make_config, tmp_path):
    TD3Agent(make_config(seed=1)).save(tmp_path)
    (tmp_path / 'critic_2.pt').unlink()

    agent = TD3Agent(make_config(seed=2))
    before = agent.actor.get_weights()
    with pytest.raises(PersistenceError):
        agent.load(tmp_path)
    assert all(torch.equal(p, b) for p, b in zip(agent.actor.get_weights(), before))


def test_load_actor_syncs_target(make_config, tmp_path):
    source = TD3Agent(make_config(seed=1))
    source.actor.save(tmp_path / 'actor.pt')

    agent = TD3Agent(make_config(seed=2))
    agent.load_actor(tmp_path / 'actor.pt')
    assert weights_equal(agent.actor, source.actor)
    assert weights_equal(agent.actor_target, source.actor)


def test_critics_regress_toward_min_of_target_critics(make_config):
    gamma = 0.9
    agent = TD3Agent(make_config(gamma=gamma, policy_noise=0.0, batch_size=9))
    fill(agent, 10)  # 10 条中采样 9 条，至少含 3 条终止转移

    # 目标 Critic 输出常数 5 和 2，TD 目标应使用较小值
    for target, value in zip(agent.critic_targets, (5.0, 2.0)):
        target.predict = lambda states, actions, value=value: torch.full((states.shape[0], 1), value)

    sampled = []
    original_sample = agent.replay_buffer.sample

    def record_sample(n):
        batch = original_sample(n)
        sampled.append(batch)
        return batch

    agent.replay_buffer.sample = record_sample

    received = []
    for critic in agent.critics:
        def record_optimize(states, actions, targets, optimize=critic.optimize):
            received.append(targets.clone())
            return optimize(states, actions, targets)
        critic.optimize = record_optimize

    agent.train_step(1)

    (batch,) = sampled
    rewards = torch.from_numpy(batch.rewards)
    terminals = torch.from_numpy(batch.terminals)
    expected = rewards + gamma * 2.0 * (1.0 - terminals)

    assert len(received) == 2
    for targets in received:
        torch.testing.assert_close(targets, expected)
    # 终止转移不做 bootstrap
    assert terminals.sum().item() > 0
    torch.testing.assert_close(targets[terminals.bool()], rewards[terminals.bool()])


def test_copy_networks(make_config):
    source = TD3Agent(make_config(seed=1))
    fill(source, 3)
    agent = TD3Agent(make_config(seed=2))
    agent.copy_networks(source)

    assert weights_equal(agent.actor, source.actor)
    assert weights_equal(agent.actor_target, source.actor_target)
    for a, b in zip(agent.critics + agent.critic_targets, source.critics + source.critic_targets):
        assert weights_equal(a, b)
    assert len(agent.replay_buffer) == 0

    with pytest.raises(ValueError):
        TD3Agent(make_config(twin_critics=False)).copy_networks(source)

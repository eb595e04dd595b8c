"""Tests for gamenet/training - the generic training loop and its callbacks."""

import logging
from unittest.mock import MagicMock

import pytest
import torch
import torch.nn as nn
import torch.nn.functional as F

from gamenet.errors import InvalidConfiguration, NumericalFailure
from gamenet.optim import CyclicMomentum, FixedAdaptive
from gamenet.training import (
    LoggingCallback,
    MetricsCallback,
    TrainingConfig,
    TrainingMetrics,
    chain_callbacks,
    check_finite,
    compute_loss_and_grads,
    train,
)


def _mse(model):
    return lambda x, y: F.mse_loss(model(x), y)


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, step, loss):
        self.calls.append((step, loss))


class TestComputeLossAndGrads:
    """Tests for compute_loss_and_grads."""

    def test_tuple_batch_unpacked(self, linear_model):
        params = list(linear_model.parameters())
        x, y = torch.randn(3, 4), torch.randn(3, 1)
        loss, grads = compute_loss_and_grads(_mse(linear_model), params, (x, y))
        assert loss.dim() == 0
        assert not loss.requires_grad
        assert all(g is not None for g in grads)

    def test_single_batch_passed_through(self, linear_model):
        params = list(linear_model.parameters())
        loss, _ = compute_loss_and_grads(lambda x: linear_model(x).sum(), params, torch.randn(2, 4))
        assert torch.isfinite(loss)

    def test_grads_reset_between_calls(self, linear_model):
        params = list(linear_model.parameters())
        batch = (torch.randn(3, 4), torch.randn(3, 1))
        _, first = compute_loss_and_grads(_mse(linear_model), params, batch)
        first = [g.clone() for g in first]
        _, second = compute_loss_and_grads(_mse(linear_model), params, batch)
        for a, b in zip(first, second):
            assert torch.allclose(a, b)


class TestCheckFinite:
    def test_passes_finite(self):
        check_finite(1, torch.tensor(1.0), [torch.ones(2), None])

    def test_nan_loss(self):
        with pytest.raises(NumericalFailure, match="loss") as exc:
            check_finite(3, torch.tensor(float("nan")), [])
        assert exc.value.step == 3

    def test_inf_gradient(self):
        with pytest.raises(NumericalFailure, match="gradient"):
            check_finite(1, torch.tensor(0.0), [torch.tensor([float("inf")])])


class TestTrain:
    """Tests for the train loop."""

    def test_callback_once_per_step_in_order(self, linear_model, regression_data):
        rec = _Recorder()
        state = train(rec, linear_model, FixedAdaptive(1e-2), _mse(linear_model), regression_data, 5)
        assert [s for s, _ in rec.calls] == [1, 2, 3, 4, 5]
        assert all(isinstance(l, float) for _, l in rec.calls)
        assert state.step == 5

    def test_stops_when_data_exhausted(self, linear_model, regression_data):
        rec = _Recorder()
        state = train(rec, linear_model, FixedAdaptive(1e-2), _mse(linear_model), regression_data, 25)
        assert [s for s, _ in rec.calls] == list(range(1, 11))
        assert state.step == 10

    def test_consumes_iterators_lazily(self, linear_model, regression_data):
        stream = iter(regression_data)
        train(lambda i, l: None, linear_model, FixedAdaptive(), _mse(linear_model), stream, 3)
        assert len(list(stream)) == 7

    def test_empty_stream(self, linear_model):
        rec = _Recorder()
        state = train(rec, linear_model, FixedAdaptive(), _mse(linear_model), [], 3)
        assert rec.calls == []
        assert state.step == 0

    def test_zero_steps_rejected(self, linear_model, regression_data):
        with pytest.raises(InvalidConfiguration):
            train(lambda i, l: None, linear_model, FixedAdaptive(), _mse(linear_model), regression_data, 0)

    def test_integral_float_steps(self, linear_model, regression_data):
        rec = _Recorder()
        state = train(rec, linear_model, FixedAdaptive(), _mse(linear_model), regression_data, 2.0)
        assert [s for s, _ in rec.calls] == [1, 2]
        assert state.n_steps == 2

    def test_fractional_steps_rejected(self, linear_model, regression_data):
        with pytest.raises(InvalidConfiguration):
            train(lambda i, l: None, linear_model, FixedAdaptive(), _mse(linear_model), regression_data, 2.5)

    @pytest.mark.parametrize(
        "policy",
        [FixedAdaptive(lr=5e-2), CyclicMomentum(0.01, 0.05, 0.001, 0.95, 0.85)],
    )
    def test_loss_decreases(self, linear_model, regression_data, policy):
        data = regression_data * 20
        rec = _Recorder()
        train(rec, linear_model, policy, _mse(linear_model), data, len(data))
        first = sum(l for _, l in rec.calls[:10])
        last = sum(l for _, l in rec.calls[-10:])
        assert last < first

    def test_cyclic_policy_peaks_mid_run(self, linear_model, regression_data):
        policy = CyclicMomentum(0.01, 0.1, 0.001, 0.95, 0.85)
        seen = []
        captured = {}

        def callback(step, loss):
            group = captured["opt"].param_groups[0]
            seen.append((step, group["lr"], group["momentum"]))

        original = policy.create_state

        class Spy:
            def __getattr__(self, name):
                return getattr(policy, name)

            def create_state(self, params, n_steps):
                state = original(params, n_steps)
                captured["opt"] = state.optimizer
                return state

        train(callback, linear_model, Spy(), _mse(linear_model), regression_data, 10)
        by_step = {s: (lr, m) for s, lr, m in seen}
        assert by_step[1] == pytest.approx((0.01, 0.95))
        assert by_step[5] == pytest.approx((0.1, 0.85))
        assert by_step[10] == pytest.approx((0.001, 0.95))

    def test_nonfinite_loss_propagates(self, linear_model):
        before = linear_model.weight.detach().clone()
        data = [torch.randn(2, 4)]

        def loss_fn(x):
            return linear_model(x).sum() * float("nan")

        with pytest.raises(NumericalFailure):
            train(lambda i, l: None, linear_model, FixedAdaptive(), loss_fn, data, 1)
        assert torch.equal(before, linear_model.weight.detach())

    def test_finite_check_can_be_disabled(self, linear_model):
        config = TrainingConfig(check_finite=False)
        data = [torch.randn(2, 4)]
        rec = _Recorder()
        train(rec, linear_model, FixedAdaptive(), lambda x: linear_model(x).sum() * float("inf"), data, 1, config=config)
        assert len(rec.calls) == 1

    def test_callback_exception_aborts(self, linear_model, regression_data):
        def callback(step, loss):
            if step == 2:
                raise KeyboardInterrupt

        calls = []
        with pytest.raises(KeyboardInterrupt):
            train(
                chain_callbacks(lambda s, l: calls.append(s), callback),
                linear_model, FixedAdaptive(), _mse(linear_model), regression_data, 10,
            )
        assert calls == [1, 2]

    def test_frozen_params_untouched(self, regression_data):
        model = nn.Sequential(nn.Linear(4, 4), nn.Linear(4, 1))
        model[0].weight.requires_grad_(False)
        frozen = model[0].weight.detach().clone()
        train(lambda i, l: None, model, FixedAdaptive(), lambda x, y: F.mse_loss(model(x), y), regression_data, 3)
        assert torch.equal(frozen, model[0].weight)

    def test_debug_logging(self, linear_model, regression_data, caplog):
        with caplog.at_level(logging.DEBUG, logger="gamenet.training.loop"):
            train(
                lambda i, l: None, linear_model, FixedAdaptive(), _mse(linear_model),
                regression_data, 4, config=TrainingConfig(log_interval=2),
            )
        assert sum("step 2/4" in r.message or "step 4/4" in r.message for r in caplog.records) == 2


class TestTrainingConfig:
    def test_invalid_log_interval(self):
        with pytest.raises(InvalidConfiguration):
            TrainingConfig(log_interval=0)

    def test_invalid_log_level(self):
        with pytest.raises(InvalidConfiguration):
            TrainingConfig(log_level="chatty")


class TestCallbacks:
    """Tests for metrics and logging callbacks."""

    def test_metrics_callback(self):
        cb = MetricsCallback()
        for step, loss in [(1, 3.0), (2, 1.0), (3, 2.0)]:
            cb(step, loss)
        m = cb.metrics
        assert m.steps == [1, 2, 3]
        assert m.initial_loss == 3.0
        assert m.final_loss == 2.0
        assert m.best_loss == 1.0
        assert m.best_loss_step == 2
        assert m.to_dict()["losses"] == [3.0, 1.0, 2.0]

    def test_metrics_ema(self):
        m = TrainingMetrics(ema_alpha=0.5)
        m.update(1, 4.0, 0.0)
        m.update(2, 2.0, 0.0)
        assert m.ema_loss == pytest.approx(3.0)

    def test_logging_callback_interval(self):
        logger = MagicMock()
        cb = LoggingCallback(logger, interval=3)
        for step in range(1, 7):
            cb(step, 0.5)
        assert logger.log_metrics.call_count == 2
        logger.log_metrics.assert_called_with({"loss": 0.5}, 6, prefix="train/")

    def test_logging_callback_invalid_interval(self):
        with pytest.raises(ValueError):
            LoggingCallback(MagicMock(), interval=0)

    def test_chain_order(self):
        order = []
        chained = chain_callbacks(lambda s, l: order.append("a"), lambda s, l: order.append("b"))
        chained(1, 0.0)
        assert order == ["a", "b"]

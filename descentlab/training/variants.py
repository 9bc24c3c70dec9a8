"""Model variants with hand-derived gradients.

Each variant supplies the forward pass, point-wise loss, point-wise gradient
and the dataset-mean reducer the generic :class:`~descentlab.training.trainer.Trainer`
drives. Parameters are plain ``float64`` vectors ordered by ``param_names``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Mapping, Protocol, Sequence, Tuple

import numpy as np

from ..core.activations import Activation, get_activation, is_saturated
from ..core.errors import InvalidConfiguration
from ..core.types import Array, ChainRuleComponent, default_input_names
from .losses import l2_norm, mean_over_points, squared_error, squared_error_grad

ParamValues = float | Sequence[float] | Mapping[str, float] | Array | None


@dataclass
class PointTrace:
    """Per-point quantities computed at one set of parameters.

    ``grads`` has shape ``(n, p)``; ``detail`` holds extra per-point arrays
    (the chain-rule terms of the neuron) keyed by their record name.
    """

    predictions: Array
    losses: Array
    grads: Array
    detail: Dict[str, Array] = field(default_factory=dict)


class ModelVariant(Protocol):
    """Protocol implemented by every trainable parameterisation."""

    name: str
    param_names: Tuple[str, ...]
    input_names: Tuple[str, ...]

    def initial_params(self, values: ParamValues = None) -> Array:
        """Return the starting parameter vector, all zero by default."""

    def forward(self, params: Array, inputs: Array) -> Array:
        """Return one prediction per input row."""

    def point_loss(self, predictions: Array, targets: Array) -> Array:
        """Return the per-point loss."""

    def gradient(self, params: Array, inputs: Array, targets: Array) -> Array:
        """Return per-point partials with shape ``(n, len(param_names))``."""

    def aggregate(self, values: Array) -> float | Array:
        """Reduce per-point values to their dataset mean."""

    def trace(self, params: Array, inputs: Array, targets: Array) -> PointTrace:
        """Return every per-point quantity a snapshot records."""

    def loss(self, params: Array, inputs: Array, targets: Array) -> float:
        """Return the aggregate loss at ``params``."""

    def diagnostics(self, trace: PointTrace, grads: Array) -> Dict[str, Any]:
        """Return step-level scalar diagnostics."""

    def chain_rule_breakdown(
        self, trace: PointTrace, inputs: Array
    ) -> Tuple[ChainRuleComponent, ...]:
        """Return the per-parameter chain-rule decomposition, if any."""


class _SquaredErrorVariant:
    """Behaviour shared by all variants: MSE loss and mean aggregation."""

    name = ""
    param_names: Tuple[str, ...] = ()
    input_names: Tuple[str, ...] = ()

    def initial_params(self, values: ParamValues = None) -> Array:
        size = len(self.param_names)
        if values is None:
            return np.zeros(size, dtype=np.float64)
        if isinstance(values, Mapping):
            unknown = sorted(set(values) - set(self.param_names))
            if unknown:
                raise KeyError(f"Unknown parameters for {self.name}: {', '.join(unknown)}")
            return np.array([float(values.get(n, 0.0)) for n in self.param_names])
        params = np.array(values, dtype=np.float64).reshape(-1)
        if params.shape[0] != size:
            raise InvalidConfiguration(
                "initial_params", np.asarray(values).tolist(), f"must have {size} values"
            )
        return params

    def forward(self, params: Array, inputs: Array) -> Array:  # pragma: no cover - abstract
        raise NotImplementedError

    def point_loss(self, predictions: Array, targets: Array) -> Array:
        return squared_error(predictions, targets)

    def gradient(self, params: Array, inputs: Array, targets: Array) -> Array:
        return self.trace(params, inputs, targets).grads

    def aggregate(self, values: Array) -> float | Array:
        return mean_over_points(values)

    def trace(self, params: Array, inputs: Array, targets: Array) -> PointTrace:
        predictions = self.forward(params, inputs)
        residual = squared_error_grad(predictions, targets)
        grads = np.column_stack([residual * inputs[:, k] for k in range(inputs.shape[1])])
        return PointTrace(
            predictions=predictions,
            losses=self.point_loss(predictions, targets),
            grads=grads.reshape(len(targets), len(self.param_names)),
        )

    def loss(self, params: Array, inputs: Array, targets: Array) -> float:
        return float(self.aggregate(self.point_loss(self.forward(params, inputs), targets)))

    def diagnostics(self, trace: PointTrace, grads: Array) -> Dict[str, Any]:
        return {}

    def chain_rule_breakdown(
        self, trace: PointTrace, inputs: Array
    ) -> Tuple[ChainRuleComponent, ...]:
        return ()

    def describe(self) -> Dict[str, Any]:
        return {"variant": self.name, "params": list(self.param_names)}


class Linear1D(_SquaredErrorVariant):
    """``y = w * x``."""

    name = "linear1d"
    param_names = ("w",)
    input_names = ("x",)

    def forward(self, params: Array, inputs: Array) -> Array:
        return params[0] * inputs[:, 0]


class Linear2D(_SquaredErrorVariant):
    """``y = w1 * x1 + w2 * x2`` with gradient magnitude and direction."""

    name = "linear2d"
    param_names = ("w1", "w2")
    input_names = ("x1", "x2")

    def forward(self, params: Array, inputs: Array) -> Array:
        return params[0] * inputs[:, 0] + params[1] * inputs[:, 1]

    def diagnostics(self, trace: PointTrace, grads: Array) -> Dict[str, Any]:
        g1, g2 = float(grads[0]), float(grads[1])
        return {
            "gradient_magnitude": l2_norm((g1, g2)),
            # atan2 already lies in [-pi, pi]
            "gradient_direction": math.atan2(g2, g1),
        }


class Neuron(_SquaredErrorVariant):
    """A single neuron ``a = sigma(w . x + b)`` trained on ``(a - y)^2``.

    Gradients follow the chain rule ``dL/dw_k = dL/da * sigma'(z) * x_k`` and
    ``dL/db = dL/da * sigma'(z)``.
    """

    name = "neuron"

    def __init__(self, activation: str = "sigmoid", num_inputs: int = 2) -> None:
        if num_inputs <= 0:
            raise InvalidConfiguration("num_inputs", num_inputs, "must be positive")
        self.activation: Activation = get_activation(activation)
        self.num_inputs = int(num_inputs)
        self.input_names = default_input_names(self.num_inputs)
        self.param_names = tuple(f"w{k + 1}" for k in range(self.num_inputs)) + ("b",)

    def preactivation(self, params: Array, inputs: Array) -> Array:
        z = np.zeros(inputs.shape[0], dtype=np.float64)
        for k in range(self.num_inputs):
            z = z + params[k] * inputs[:, k]
        return z + params[-1]

    def forward(self, params: Array, inputs: Array) -> Array:
        return self.activation(self.preactivation(params, inputs))

    def trace(self, params: Array, inputs: Array, targets: Array) -> PointTrace:
        z = self.preactivation(params, inputs)
        a = self.activation(z)
        dL_da = squared_error_grad(a, targets)
        da_dz = self.activation.deriv(z)
        dL_dz = dL_da * da_dz
        dL_dw = dL_dz[:, None] * inputs
        dL_db = dL_dz * 1.0
        return PointTrace(
            predictions=a,
            losses=self.point_loss(a, targets),
            grads=np.column_stack([dL_dw, dL_db]),
            detail={
                "z": z,
                "a": a,
                "dL_da": dL_da,
                "da_dz": da_dz,
                "dL_dz": dL_dz,
                "dz_dw": inputs,
                "in_saturation": is_saturated(da_dz),
            },
        )

    def diagnostics(self, trace: PointTrace, grads: Array) -> Dict[str, Any]:
        local_derivative = self.aggregate(trace.detail["da_dz"])
        return {
            "activation": self.activation.name,
            "gradient_magnitude": l2_norm(grads.tolist()),
            "z": self.aggregate(trace.detail["z"]),
            "a": self.aggregate(trace.detail["a"]),
            "dL_da": self.aggregate(trace.detail["dL_da"]),
            "dL_dz": self.aggregate(trace.detail["dL_dz"]),
            "local_derivative": local_derivative,
            "in_saturation_zone": bool(is_saturated(local_derivative)),
            "saturated_points": int(np.count_nonzero(trace.detail["in_saturation"])),
        }

    def chain_rule_breakdown(
        self, trace: PointTrace, inputs: Array
    ) -> Tuple[ChainRuleComponent, ...]:
        # Products of dataset means, shown for intuition; not the exact gradient.
        dL_da = self.aggregate(trace.detail["dL_da"])
        da_dz = self.aggregate(trace.detail["da_dz"])
        dz_dw = np.atleast_1d(self.aggregate(inputs))
        components = [
            ChainRuleComponent(
                param_name=name,
                dL_da=dL_da,
                da_dz=da_dz,
                dz_dparam=float(dz_dw[k]),
                dL_dparam=dL_da * da_dz * float(dz_dw[k]),
            )
            for k, name in enumerate(self.param_names[:-1])
        ]
        components.append(
            ChainRuleComponent(
                param_name="b", dL_da=dL_da, da_dz=da_dz, dz_dparam=1.0, dL_dparam=dL_da * da_dz * 1.0
            )
        )
        return tuple(components)

    def describe(self) -> Dict[str, Any]:
        payload = super().describe()
        payload["activation"] = self.activation.name
        return payload


class VariantRegistry:
    """Central registry for model variants."""

    def __init__(self) -> None:
        self._registry: Dict[str, Callable[..., ModelVariant]] = {}

    def register(self, name: str, factory: Callable[..., ModelVariant]) -> None:
        self._registry[name] = factory

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def create(self, name: str, **options: Any) -> ModelVariant:
        if name not in self._registry:
            available = ", ".join(self.names())
            raise KeyError(f"Unknown variant {name!r}. Available variants: {available}")
        return self._registry[name](**options)


REGISTRY = VariantRegistry()
REGISTRY.register("linear1d", Linear1D)
REGISTRY.register("linear2d", Linear2D)
REGISTRY.register("neuron", Neuron)


def get_variant(name: str, **options: Any) -> ModelVariant:
    return REGISTRY.create(name, **options)


def available_variants() -> Iterable[str]:
    return REGISTRY.names()


__all__ = [
    "Linear1D",
    "Linear2D",
    "ModelVariant",
    "Neuron",
    "PointTrace",
    "REGISTRY",
    "VariantRegistry",
    "available_variants",
    "get_variant",
]

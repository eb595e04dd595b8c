"""
Selection of the parameters that enter a weight-regularization term.

A network is viewed as a graph of ``nn.Module`` nodes. Parameters and buffers
are leaves and are never traversed. Modules may be shared between several
parents, and a module may even register one of its ancestors, so nodes are
first resolved into a ``NodeArena`` (one integer index per distinct module)
and traversal works on indices with an explicit visited set.

Which parameters of a node are regularizable is decided per node kind by a
dispatch table. Kinds without a rule contribute nothing, so biases and
normalization parameters are never regularized unless a rule says so.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

import torch
import torch.nn as nn
from torch.nn.modules.conv import _ConvNd

from gamenet.errors import InvalidConfiguration

RegularizerRule = Callable[[nn.Module], List[torch.Tensor]]


def _no_params(node: nn.Module) -> List[torch.Tensor]:
    return []


_REGULARIZERS: Dict[type, RegularizerRule] = {}


def register_regularizer(kind: type) -> Callable[[RegularizerRule], RegularizerRule]:
    """Register the regularizable-parameter rule for a module kind.

    Usage:
        @register_regularizer(MyLayer)
        def _(layer):
            return [layer.kernel]
    """
    if not (isinstance(kind, type) and issubclass(kind, nn.Module)):
        raise InvalidConfiguration(f"Regularizer kinds must be nn.Module subclasses, got {kind!r}")

    def decorator(rule: RegularizerRule) -> RegularizerRule:
        _REGULARIZERS[kind] = rule
        return rule

    return decorator


def unregister_regularizer(kind: type) -> None:
    _REGULARIZERS.pop(kind, None)


def registered_kinds() -> tuple[type, ...]:
    return tuple(_REGULARIZERS)


def rule_for(kind: type) -> Optional[RegularizerRule]:
    """Most specific registered rule for ``kind`` (MRO order), or None."""
    for klass in kind.__mro__:
        rule = _REGULARIZERS.get(klass)
        if rule is not None:
            return rule
    return None


def regularizable_of(node: nn.Module) -> List[torch.Tensor]:
    rule = rule_for(type(node)) or _no_params
    return [p for p in rule(node) if p is not None]


@register_regularizer(nn.Linear)
def _linear(layer: nn.Linear) -> List[torch.Tensor]:
    return [layer.weight]


@register_regularizer(nn.Bilinear)
def _bilinear(layer: nn.Bilinear) -> List[torch.Tensor]:
    return [layer.weight]


@register_regularizer(_ConvNd)
def _conv(layer: _ConvNd) -> List[torch.Tensor]:
    return [layer.weight]


# Embedding tables are not weight-decayed.
register_regularizer(nn.Embedding)(_no_params)


@dataclass
class NodeArena:
    """Distinct modules of a graph, addressed by integer index.

    ``nodes[0]`` is the root. ``children[i]`` lists child indices of node
    ``i`` in registration order; it may repeat indices and point back to
    ancestors.
    """

    nodes: List[nn.Module] = field(default_factory=list)
    children: List[List[int]] = field(default_factory=list)

    @classmethod
    def from_module(cls, root: nn.Module) -> "NodeArena":
        arena = cls()
        index: Dict[int, int] = {}

        def intern(module: nn.Module) -> int:
            key = id(module)
            if key not in index:
                index[key] = len(arena.nodes)
                arena.nodes.append(module)
                arena.children.append([])
                pending.append(module)
            return index[key]

        pending: List[nn.Module] = []
        intern(root)
        while pending:
            module = pending.pop()
            i = index[id(module)]
            arena.children[i] = [intern(child) for child in module.children()]
        return arena

    def __len__(self) -> int:
        return len(self.nodes)


def foreach_node(
    fn: Callable[[int, nn.Module], None],
    arena: NodeArena,
    root: int = 0,
    seen: Optional[Set[int]] = None,
) -> Set[int]:
    """Call ``fn(index, node)`` once per node reachable from ``root``, in preorder.

    Returns the set of visited indices. Passing ``seen`` lets several
    traversals share one visited set.
    """
    seen = set() if seen is None else seen
    stack = [root]
    while stack:
        i = stack.pop()
        if i in seen:
            continue
        seen.add(i)
        fn(i, arena.nodes[i])
        # Reverse so children are visited in registration order.
        stack.extend(reversed(arena.children[i]))
    return seen


def collect_regularized(root: nn.Module, kinds: Optional[Iterable[type]] = None) -> List[nn.Parameter]:
    """Regularizable parameters reachable from ``root``, each exactly once.

    If ``kinds`` is given only those node kinds contribute, and every one of
    them must have a registered rule.
    """
    allowed: Optional[tuple] = None
    if kinds is not None:
        allowed = tuple(kinds)
        missing = [k for k in allowed if not isinstance(k, type) or rule_for(k) is None]
        if missing:
            names = ", ".join(getattr(k, "__name__", repr(k)) for k in missing)
            raise InvalidConfiguration(f"No regularization rule registered for: {names}")

    arena = NodeArena.from_module(root)
    params: List[nn.Parameter] = []
    ids: Set[int] = set()

    def visit(_: int, node: nn.Module) -> None:
        if allowed is not None and not isinstance(node, allowed):
            return
        for p in regularizable_of(node):
            if id(p) not in ids:
                ids.add(id(p))
                params.append(p)

    foreach_node(visit, arena)
    return params


def unique_parameters(module: nn.Module) -> List[nn.Parameter]:
    """All parameters reachable from ``module``, deduplicated by identity."""
    params: List[nn.Parameter] = []
    ids: Set[int] = set()

    def visit(_: int, node: nn.Module) -> None:
        for p in node.parameters(recurse=False):
            if id(p) not in ids:
                ids.add(id(p))
                params.append(p)

    foreach_node(visit, NodeArena.from_module(module))
    return params


def regularization_penalty(params: Iterable[torch.Tensor], p: int = 2) -> torch.Tensor:
    """Sum of ``|w|^2`` (p=2) or ``|w|`` (p=1) over ``params``."""
    if p not in (1, 2):
        raise InvalidConfiguration(f"Unsupported penalty order p={p}")
    terms = [w.pow(2).sum() if p == 2 else w.abs().sum() for w in params]
    if not terms:
        return torch.zeros(())
    return torch.stack(terms).sum()


def decay_param_groups(module: nn.Module, weight_decay: float) -> List[dict]:
    """Split parameters into decayed/non-decayed ``torch.optim`` param groups."""
    decay = collect_regularized(module)
    decay_ids = {id(p) for p in decay}
    no_decay = [p for p in unique_parameters(module) if id(p) not in decay_ids]
    groups = []
    if decay:
        groups.append({"params": decay, "weight_decay": weight_decay})
    if no_decay:
        groups.append({"params": no_decay, "weight_decay": 0.0})
    return groups

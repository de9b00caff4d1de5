"""
Conversions between caller attributes and API payload shapes.

Every function here is pure: no I/O, no logging, inputs are never mutated.
`expand_*` goes caller -> wire, `flatten_*` goes wire -> caller, and
`expand(flatten(x)) == x` holds for labels, taints and autoscaling.
"""

from collections.abc import Iterable, Mapping

from .core import AUTOSCALING_MAX_SIZE, AUTOSCALING_MIN_SIZE, TAINT_EFFECTS
from .errors import ValidationError
from .schemas.cluster import ClusterNode, ClusterNodeInput
from .schemas.node_pool import (
    Autoscaling,
    AutoscalingSettings,
    NodeLabel,
    NodeTaint,
    Taint,
)


def expand_labels(labels: Mapping[str, str]) -> list[NodeLabel]:
    return [NodeLabel(key=key, value=value) for key, value in labels.items()]


def flatten_labels(labels: Iterable[NodeLabel] | None) -> dict[str, str]:
    return {label.key: label.value for label in labels or []}


def expand_taints(taints: Iterable[Taint]) -> list[NodeTaint]:
    return [NodeTaint(key=t.key, value=t.value, effect=t.effect) for t in taints]


def flatten_taints(taints: Iterable[NodeTaint] | None) -> list[Taint]:
    # The API omits the field entirely for pools without taints
    if taints is None:
        return []
    return [Taint(t.key, t.value, t.effect) for t in taints]


def expand_autoscaling(block: Autoscaling | None) -> AutoscalingSettings:
    """An absent block means autoscaling is disabled."""
    if block is None:
        return AutoscalingSettings(enabled=False, min_size=0, max_size=0)
    return AutoscalingSettings(
        enabled=block.enabled, min_size=block.min_size, max_size=block.max_size
    )


def flatten_autoscaling(settings: AutoscalingSettings | None) -> Autoscaling:
    if settings is None:
        settings = AutoscalingSettings()
    return Autoscaling(
        enabled=settings.enabled,
        min_size=settings.min_size,
        max_size=settings.max_size,
    )


def expand_cluster_nodes(nodes: Iterable[ClusterNode]) -> list[ClusterNodeInput]:
    return [
        ClusterNodeInput(node_type_name=n.node_type, quantity=n.quantity) for n in nodes
    ]


# Validation (raised before any request is built)


def validate_quantity(quantity: int, entity: str) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError(
            f"{entity}: quantity must be a positive integer, got {quantity!r}"
        )


def validate_taint(taint: Taint, entity: str) -> None:
    if taint.effect not in TAINT_EFFECTS:
        raise ValidationError(
            f"{entity}: taint {taint.key!r} has invalid effect {taint.effect!r}, "
            f"expected one of {', '.join(TAINT_EFFECTS)}"
        )


def validate_autoscaling(block: Autoscaling | None, entity: str) -> None:
    # Bounds only apply while enabled; disabled reads back as zero bounds
    if block is None or not block.enabled:
        return
    if block.min_size < AUTOSCALING_MIN_SIZE:
        raise ValidationError(
            f"{entity}: autoscaling min_size must be at least {AUTOSCALING_MIN_SIZE}"
        )
    if block.max_size > AUTOSCALING_MAX_SIZE:
        raise ValidationError(
            f"{entity}: autoscaling max_size must be at most {AUTOSCALING_MAX_SIZE}"
        )
    if block.min_size > block.max_size:
        raise ValidationError(
            f"{entity}: autoscaling min_size {block.min_size} exceeds "
            f"max_size {block.max_size}"
        )

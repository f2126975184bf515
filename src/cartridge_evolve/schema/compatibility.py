"""Compatibility checking between two versions of a source schema."""

import copy
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import structlog

from .types import (
    ArraySchema,
    CompatibilityPolicy,
    CompatibilityResult,
    EnumSchema,
    FixedSchema,
    MapSchema,
    RecordSchema,
    SchemaKind,
    SchemaNode,
    UnionSchema,
    field_path,
    items_path,
    unwrap_nullable,
    values_path,
)

logger = structlog.get_logger(__name__)

NO_PRIOR_SCHEMA_WARNING = "no prior schema, accepting new schema"
NULL_REPLACEMENT_ISSUE = "cannot replace existing schema with null"
NO_CHECKING_WARNING = "no compatibility checking performed"


@dataclass
class PolicyCounters:
    """Check counters for a single policy."""

    total: int = 0
    passed: int = 0
    failed: int = 0


@dataclass
class CompatibilityMetrics:
    """Monotonic counters of compatibility checks."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    by_policy: Dict[CompatibilityPolicy, PolicyCounters] = field(
        default_factory=lambda: {policy: PolicyCounters() for policy in CompatibilityPolicy}
    )

    @property
    def success_rate(self) -> float:
        return self.passed / self.total if self.total else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compatibility_checks_total": self.total,
            "compatibility_checks_passed": self.passed,
            "compatibility_checks_failed": self.failed,
            "compatibility_success_rate": self.success_rate,
            "by_policy": {
                policy.value: {
                    "total": counters.total,
                    "passed": counters.passed,
                    "failed": counters.failed,
                }
                for policy, counters in self.by_policy.items()
            },
        }


def _where(path: str) -> str:
    return path or "<root>"


def _is_nullable(node: SchemaNode) -> bool:
    """A node is nullable when it is a union with a null member."""
    return isinstance(node, UnionSchema) and any(
        member.kind == SchemaKind.NULL for member in node.members
    )


class CompatibilityChecker:
    """Decides whether a new schema may replace an old one under a policy.

    Checking never raises for schema input: anything unexpected met while
    walking the trees is reported as an issue with an incompatible verdict.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics = CompatibilityMetrics()
        self.logger = logger.bind(component="compatibility_checker")

    def is_compatible(
        self,
        old: Optional[SchemaNode],
        new: Optional[SchemaNode],
        policy: Union[CompatibilityPolicy, str] = CompatibilityPolicy.BACKWARD,
    ) -> bool:
        """Check compatibility and return only the verdict."""
        return self.check(old, new, policy).compatible

    def check(
        self,
        old: Optional[SchemaNode],
        new: Optional[SchemaNode],
        policy: Union[CompatibilityPolicy, str] = CompatibilityPolicy.BACKWARD,
    ) -> CompatibilityResult:
        """Check whether ``new`` may replace ``old`` under ``policy``.

        Args:
            old: Currently registered schema, or None on first registration
            new: Proposed schema, or None
            policy: Compatibility policy to apply

        Returns:
            Verdict with the breaking issues and informational warnings found

        Raises:
            ValueError: If ``policy`` is not a known policy name
        """
        policy = CompatibilityPolicy.parse(policy)

        try:
            result = self._check(old, new, policy)
        except Exception as e:
            self.logger.error("Error checking schema compatibility",
                              policy=policy.value,
                              error=str(e),
                              exc_info=True)
            result = CompatibilityResult(
                compatible=False,
                issues=[f"error during compatibility check: {e}"],
                warnings=[],
                policy=policy,
            )

        self._record(result)

        if result.compatible:
            self.logger.debug("Compatibility check passed",
                              policy=policy.value,
                              warnings=len(result.warnings))
        else:
            self.logger.info("Compatibility check failed",
                             policy=policy.value,
                             issues=result.issues)
        return result

    def compare_nodes(self, old: SchemaNode, new: SchemaNode, path: str = "") -> CompatibilityResult:
        """Compare two nodes as a backward check, without touching the counters."""
        issues: List[str] = []
        warnings: List[str] = []
        self._compare(old, new, path, issues, warnings)
        return CompatibilityResult(
            compatible=not issues,
            issues=issues,
            warnings=warnings,
            policy=CompatibilityPolicy.BACKWARD,
        )

    def metrics(self) -> CompatibilityMetrics:
        """Get a snapshot of the check counters."""
        with self._lock:
            return copy.deepcopy(self._metrics)

    def _check(
        self,
        old: Optional[SchemaNode],
        new: Optional[SchemaNode],
        policy: CompatibilityPolicy,
    ) -> CompatibilityResult:
        if old is None and new is None:
            return CompatibilityResult(True, [], [], policy)

        if old is None:
            return CompatibilityResult(True, [], [NO_PRIOR_SCHEMA_WARNING], policy)

        if new is None:
            self.logger.warning("Attempting to replace existing schema with null schema")
            return CompatibilityResult(False, [NULL_REPLACEMENT_ISSUE], [], policy)

        issues: List[str] = []
        warnings: List[str] = []

        if policy == CompatibilityPolicy.BACKWARD:
            self._compare(old, new, "", issues, warnings)
        elif policy == CompatibilityPolicy.FORWARD:
            self._compare(new, old, "", issues, warnings)
        elif policy == CompatibilityPolicy.FULL:
            for direction, reader_old, reader_new in (("backward", old, new), ("forward", new, old)):
                direction_issues: List[str] = []
                direction_warnings: List[str] = []
                self._compare(reader_old, reader_new, "", direction_issues, direction_warnings)
                issues.extend(f"{direction}: {issue}" for issue in direction_issues)
                warnings.extend(f"{direction}: {warning}" for warning in direction_warnings)
        else:
            warnings.append(NO_CHECKING_WARNING)

        return CompatibilityResult(not issues, issues, warnings, policy)

    def _compare(
        self,
        old: SchemaNode,
        new: SchemaNode,
        path: str,
        issues: List[str],
        warnings: List[str],
    ) -> None:
        old_nullable = _is_nullable(old)
        new_nullable = _is_nullable(new)

        if old_nullable and not new_nullable:
            warnings.append(f"field '{_where(path)}' changed from nullable to non-nullable")
        elif new_nullable and not old_nullable:
            warnings.append(f"field '{_where(path)}' changed from non-nullable to nullable")

        # Two unions are compared by members unless both are [null, T]
        if isinstance(old, UnionSchema) and isinstance(new, UnionSchema):
            if not (old.is_nullable_pattern and new.is_nullable_pattern):
                self._compare_unions(old, new, path, issues, warnings)
                return

        old, _ = unwrap_nullable(old)
        new, _ = unwrap_nullable(new)

        if old.kind != new.kind:
            issues.append(f"type changed from {old.kind.value} to {new.kind.value} at {_where(path)}")
            return

        if isinstance(old, RecordSchema):
            self._compare_records(old, new, path, issues, warnings)
        elif isinstance(old, ArraySchema):
            self._compare(old.items, new.items, items_path(path), issues, warnings)
        elif isinstance(old, MapSchema):
            self._compare(old.values, new.values, values_path(path), issues, warnings)
        elif isinstance(old, EnumSchema):
            self._compare_enums(old, new, path, warnings)
        elif isinstance(old, FixedSchema):
            if old.size != new.size:
                warnings.append(f"fixed size changed from {old.size} to {new.size} at {_where(path)}")
        # Primitives of the same kind are compatible; there is no implicit widening.

    def _compare_records(
        self,
        old: RecordSchema,
        new: RecordSchema,
        path: str,
        issues: List[str],
        warnings: List[str],
    ) -> None:
        new_names = set(new.field_names)
        old_names = set(old.field_names)

        removed = [name for name in old.field_names if name not in new_names]
        if removed:
            issues.append(f"fields removed from {_where(path)}: {', '.join(removed)}")

        for old_field in old.fields:
            new_field = new.get_field(old_field.name)
            if new_field is not None:
                self._compare(
                    old_field.type,
                    new_field.type,
                    field_path(path, old_field.name),
                    issues,
                    warnings,
                )

        for new_field in new.fields:
            if new_field.name in old_names:
                continue
            name = field_path(path, new_field.name)
            if new_field.has_default:
                warnings.append(f"new field '{name}' added with default")
            else:
                issues.append(f"new field '{name}' added without default")

    def _compare_unions(
        self,
        old: UnionSchema,
        new: UnionSchema,
        path: str,
        issues: List[str],
        warnings: List[str],
    ) -> None:
        old_signatures = old.member_signatures
        new_signatures = new.member_signatures

        removed = [s for s in old_signatures if s not in new_signatures]
        added = [s for s in new_signatures if s not in old_signatures]

        if removed:
            issues.append(f"union member removed at {_where(path)}: {', '.join(removed)}")
        if added:
            warnings.append(f"union member added at {_where(path)}: {', '.join(added)}")

    def _compare_enums(
        self,
        old: EnumSchema,
        new: EnumSchema,
        path: str,
        warnings: List[str],
    ) -> None:
        # Enums are only checked by kind; symbol changes never break compatibility.
        removed = [s for s in old.symbols if s not in new.symbols]
        added = [s for s in new.symbols if s not in old.symbols]
        changes = []
        if removed:
            changes.append(f"removed {', '.join(removed)}")
        if added:
            changes.append(f"added {', '.join(added)}")
        if changes:
            warnings.append(f"enum symbols changed at {_where(path)}: {'; '.join(changes)}")

    def _record(self, result: CompatibilityResult) -> None:
        with self._lock:
            counters = self._metrics.by_policy[result.policy]
            self._metrics.total += 1
            counters.total += 1
            if result.compatible:
                self._metrics.passed += 1
                counters.passed += 1
            else:
                self._metrics.failed += 1
                counters.failed += 1

"""
Parameter Store
Named configuration fields with setters and explicit dependencies, resolved in dependency order
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from .errors import ConfigResult, FieldOutOfRangeError, NegotiationError, SettingFailure

logger = logging.getLogger(__name__)


@dataclass
class ConfigurationField:
    """
    One configuration field.

    Attributes:
        name: Field key used by callers
        default: Initial value
        setter: Called as setter(proposed, *dependency_values) and returns the
            value to store; raises NegotiationError to reject the proposal
        depends_on: Fields whose resolved values the setter reads
        read_only: Constant fields; proposing a different value is rejected
    """
    name: str
    default: Any
    setter: Optional[Callable[..., Any]] = None
    depends_on: Tuple[str, ...] = ()
    read_only: bool = False


class ParameterStore:
    """Mutable configuration store applying field updates in dependency order"""

    def __init__(self):
        self._fields: Dict[str, ConfigurationField] = {}
        self._values: Dict[str, Any] = {}
        self._order: Optional[List[str]] = None

    def add_field(self, field: ConfigurationField):
        if field.name in self._fields:
            raise ValueError(f"Field '{field.name}' already defined")
        self._fields[field.name] = field
        self._values[field.name] = field.default
        self._order = None

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def get(self, name: str) -> Any:
        return self._values[name]

    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    @property
    def resolution_order(self) -> List[str]:
        """Fields sorted so every field comes after its dependencies"""
        if self._order is None:
            self._order = self._topological_order()
        return list(self._order)

    def _topological_order(self) -> List[str]:
        for field in self._fields.values():
            for dependency in field.depends_on:
                if dependency not in self._fields:
                    raise ValueError(f"Field '{field.name}' depends on unknown field '{dependency}'")

        order: List[str] = []
        placed: Set[str] = set()
        remaining = list(self._fields)
        # Registration order breaks ties so the order is deterministic.
        while remaining:
            ready = [name for name in remaining
                     if all(dep in placed for dep in self._fields[name].depends_on)]
            if not ready:
                raise ValueError(f"Dependency cycle between fields: {', '.join(remaining)}")
            for name in ready:
                order.append(name)
                placed.add(name)
            remaining = [name for name in remaining if name not in placed]
        return order

    def apply(self, updates: Dict[str, Any]) -> ConfigResult:
        """
        Apply proposed values as one transaction.

        Proposed fields and every field depending on a touched field are
        re-resolved in dependency order. If any of them is rejected nothing
        is stored and the result carries one failure per rejected field;
        fields depending on a rejected field are skipped.
        """
        failures: List[SettingFailure] = []

        for name in updates:
            if name not in self._fields:
                failures.append(SettingFailure.from_exception(
                    FieldOutOfRangeError(f"Unknown field '{name}'", field=name, value=updates[name])))

        working = dict(self._values)
        touched: Set[str] = set()
        failed: Set[str] = set()
        changed: List[str] = []

        for name in self.resolution_order:
            field = self._fields[name]
            dependency_touched = any(dep in touched for dep in field.depends_on)
            if name not in updates and not dependency_touched:
                continue
            if any(dep in failed for dep in field.depends_on):
                failed.add(name)
                continue

            proposed = updates.get(name, working[name])
            try:
                resolved = self._resolve_field(field, proposed, working)
            except NegotiationError as e:
                logger.debug(f"Rejected {name}={proposed!r}: {e}")
                failures.append(SettingFailure.from_exception(e, name))
                failed.add(name)
                continue

            if resolved != working[name]:
                logger.debug(f"{name}: {working[name]!r} -> {resolved!r}")
                changed.append(name)
                touched.add(name)
            elif name in updates:
                touched.add(name)
            working[name] = resolved

        if failures:
            logger.info(f"Configuration update rejected ({len(failures)} failure(s)): "
                        + "; ".join(f.get_short_description() for f in failures))
            return ConfigResult(success=False, failures=failures)

        self._values = working
        return ConfigResult(success=True, changed=changed)

    def _resolve_field(self, field: ConfigurationField, proposed: Any, working: Dict[str, Any]) -> Any:
        if field.read_only:
            if proposed != working[field.name]:
                raise FieldOutOfRangeError(f"Field '{field.name}' is read-only",
                                           field=field.name, value=proposed)
            return proposed
        if field.setter is None:
            return proposed
        dependency_values = [working[dep] for dep in field.depends_on]
        return field.setter(proposed, *dependency_values)

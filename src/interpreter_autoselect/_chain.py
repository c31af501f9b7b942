"""Fixed precedence of the auto-selection rules."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, NamedTuple

from ._rule import AutoSelectionRule

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ._rule import SelectionRule

LOGGER = logging.getLogger(__name__)

#: primary chain, highest precedence first
PRIMARY_ORDER: tuple[AutoSelectionRule, ...] = (
    AutoSelectionRule.settings,
    AutoSelectionRule.workspace_virtual_envs,
    AutoSelectionRule.cached_interpreters,
    AutoSelectionRule.current_path,
    AutoSelectionRule.windows_registry,
    AutoSelectionRule.system_wide,
)

#: rules evaluated on every request to warm their caches, whatever the primary chain decides
BACKGROUND_RULES: tuple[AutoSelectionRule, ...] = (
    AutoSelectionRule.windows_registry,
    AutoSelectionRule.current_path,
    AutoSelectionRule.system_wide,
)


class RuleChain(NamedTuple):
    head: SelectionRule
    rules: tuple[SelectionRule, ...]
    background: tuple[SelectionRule, ...]


def build_rule_chain(rules: Mapping[AutoSelectionRule, SelectionRule]) -> RuleChain:
    """Link one rule of each kind in precedence order.

    Each rule is linked exactly once; building two chains over the same rule objects fails.

    """
    if missing := [kind.value for kind in PRIMARY_ORDER if kind not in rules]:
        msg = f"no rule registered for {', '.join(missing)}"
        raise ValueError(msg)
    ordered = tuple(rules[kind] for kind in PRIMARY_ORDER)
    for rule, next_rule in zip(ordered, ordered[1:]):
        rule.set_next_rule(next_rule)
    LOGGER.debug("auto-selection rules %s", " -> ".join(kind.value for kind in PRIMARY_ORDER))
    return RuleChain(ordered[0], ordered, tuple(rules[kind] for kind in BACKGROUND_RULES))


__all__ = [
    "BACKGROUND_RULES",
    "PRIMARY_ORDER",
    "RuleChain",
    "build_rule_chain",
]

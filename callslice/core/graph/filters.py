"""Ignore/show/trim filters compiled for one extraction run.

Exclusion precedence is an ordered list of rules, checked once per candidate
node; the first rule that matches decides:

1. ``EXTERN``: extern exclusion is on and the node has no known definition.
   The node is added to the dynamic ignore set.
2. ``IGNORED``: exact ignore-set match.
3. ``IGNORED_PATTERN``: ignore-pattern match.
4. ``TRIMMED``: trimming is on and the node is in ``TRIM_SET``.

Nodes that match no rule are ``INCLUDED``. Show membership is checked
separately and only for included nodes, so an ignored node is never shown.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from enum import Enum

from callslice.core.exceptions import ConfigError
from callslice.core.models import ExtractionRequest, Node

# Kernel helpers that clutter call graphs without saying much about control flow
TRIM_SET = frozenset(
    {
        # locking
        "spin_lock", "spin_unlock", "spin_lock_irq", "spin_unlock_irq",
        "spin_lock_irqsave", "spin_unlock_irqrestore", "spin_lock_bh", "spin_unlock_bh",
        "spin_trylock", "_raw_spin_lock", "_raw_spin_unlock", "_raw_spin_lock_irq",
        "_raw_spin_unlock_irq", "_raw_spin_lock_irqsave", "_raw_spin_unlock_irqrestore",
        "_raw_spin_lock_bh", "_raw_spin_unlock_bh", "raw_spin_lock", "raw_spin_unlock",
        "read_lock", "read_unlock", "write_lock", "write_unlock",
        "_raw_read_lock", "_raw_read_unlock", "_raw_write_lock", "_raw_write_unlock",
        "mutex_lock", "mutex_unlock", "mutex_trylock", "mutex_lock_interruptible",
        "down_read", "up_read", "down_write", "up_write", "down", "up",
        "rcu_read_lock", "rcu_read_unlock", "rcu_read_lock_held", "synchronize_rcu",
        "local_bh_disable", "local_bh_enable",
        # scheduling and preemption
        "schedule", "cond_resched", "_cond_resched", "might_sleep", "__might_sleep",
        "___might_sleep", "might_fault", "__might_fault", "preempt_disable",
        "preempt_enable", "preempt_schedule", "preempt_count_add", "preempt_count_sub",
        "local_irq_save", "local_irq_restore", "local_irq_disable", "local_irq_enable",
        "get_current", "wake_up_process", "__wake_up",
        # barriers and atomics
        "barrier", "mb", "rmb", "wmb", "smp_mb", "smp_rmb", "smp_wmb",
        "atomic_read", "atomic_set", "atomic_inc", "atomic_dec", "atomic_add",
        "atomic_sub", "atomic_inc_return", "atomic_dec_and_test",
        "atomic_long_read", "atomic_long_inc", "atomic_long_dec",
        # bit twiddling
        "set_bit", "clear_bit", "change_bit", "test_bit", "test_and_set_bit",
        "test_and_clear_bit", "__set_bit", "__clear_bit", "find_first_bit",
        "find_next_bit", "find_first_zero_bit", "find_next_zero_bit", "fls", "ffs",
        "__fls", "__ffs", "hweight32", "hweight64", "__fswab16", "__fswab32", "__fswab64",
        # diagnostics
        "printk", "_printk", "pr_debug", "warn_slowpath_fmt", "__warn_printk",
        "dump_stack", "panic", "__bug", "__builtin_expect", "__builtin_return_address",
        "lockdep_assert_held", "lock_acquire", "lock_release", "lock_is_held_type",
        "check_preemption_disabled", "debug_smp_processor_id",
        # memory helpers
        "memset", "memcpy", "memmove", "memcmp", "strlen", "strcmp", "strncmp",
        "kmalloc", "kzalloc", "kfree", "kmem_cache_alloc", "kmem_cache_free",
        "__kmalloc", "kvfree", "vfree",
    }
)


class Verdict(Enum):
    """Outcome of checking a candidate node against the exclusion rules."""

    EXTERN = "extern"
    IGNORED = "ignored"
    IGNORED_PATTERN = "ignored-pattern"
    TRIMMED = "trimmed"
    INCLUDED = "included"

    @property
    def excluded(self) -> bool:
        return self is not Verdict.INCLUDED


def compile_patterns(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    """Compile regular expressions, reporting bad ones as ConfigError."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            raise ConfigError(f"Invalid pattern '{pattern}': {e}") from e
    return compiled


class FilterRegistry:
    """Compiled filters for one extraction run."""

    def __init__(
        self,
        ignore: Iterable[str] = (),
        ignore_patterns: Iterable[str] = (),
        show: Iterable[str] = (),
        show_patterns: Iterable[str] = (),
        trim: bool = False,
        no_extern: bool = False,
    ) -> None:
        self.ignore: set[str] = set(ignore)
        self.ignore_patterns = compile_patterns(ignore_patterns)
        self.show: set[str] = set(show)
        self.show_patterns = compile_patterns(show_patterns)
        self.trim_set: frozenset[str] = TRIM_SET if trim else frozenset()
        self.no_extern = no_extern
        self.dynamic_ignore: set[str] = set()

        self._rules: list[tuple[Verdict, Callable[[Node], bool]]] = [
            (Verdict.EXTERN, self._is_excluded_extern),
            (Verdict.IGNORED, lambda node: node.name in self.ignore),
            (Verdict.IGNORED_PATTERN, lambda node: _matches(self.ignore_patterns, node.name)),
            (Verdict.TRIMMED, lambda node: node.name in self.trim_set),
        ]

    @classmethod
    def from_request(cls, request: ExtractionRequest) -> FilterRegistry:
        return cls(
            ignore=request.ignore,
            ignore_patterns=request.ignore_patterns,
            show=request.show,
            show_patterns=request.show_patterns,
            trim=request.trim,
            no_extern=request.no_extern,
        )

    def _is_excluded_extern(self, node: Node) -> bool:
        if node.name in self.dynamic_ignore:
            return True
        if self.no_extern and node.is_extern:
            self.dynamic_ignore.add(node.name)
            return True
        return False

    def classify(self, node: Node) -> Verdict:
        for verdict, rule in self._rules:
            if rule(node):
                return verdict
        return Verdict.INCLUDED

    def is_shown(self, node: Node) -> bool:
        """Whether an included node is rendered but not expanded."""
        return node.name in self.show or _matches(self.show_patterns, node.name)


def _matches(patterns: list[re.Pattern[str]], name: str) -> bool:
    return any(p.search(name) for p in patterns)

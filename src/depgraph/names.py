"""Default identifier sets used by traversal, search and dead code detection.

All of these are plain values. Callers may pass their own sets (usually via
``ProjectConfig``) to tune the heuristics.
"""

from __future__ import annotations

# Names that are reported by a traversal but never expanded. They are
# called from so many places that following them floods the result set.
DEFAULT_TERMINAL_NAMES: frozenset[str] = frozenset({
    # constructors / factories
    "new", "default", "init", "__init__", "__new__", "constructor", "create",
    "build", "builder", "with", "from", "into", "of",
    # common trait / dunder / interface methods
    "clone", "drop", "fmt", "eq", "ne", "cmp", "partial_cmp", "hash",
    "to_string", "toString", "valueOf", "equals", "hashCode", "compareTo",
    "__str__", "__repr__", "__eq__", "__ne__", "__hash__", "__lt__",
    "__len__", "__iter__", "__next__", "__getitem__", "__setitem__",
    "__contains__", "__call__", "__enter__", "__exit__",
    "serialize", "deserialize", "as_ref", "as_mut", "borrow", "borrow_mut",
    "deref", "deref_mut", "to_owned", "to_dict", "to_json",
    # collection primitives
    "get", "set", "push", "pop", "insert", "remove", "contains", "len",
    "is_empty", "iter", "iter_mut", "into_iter", "next", "size_hint", "index",
    "index_mut", "map", "filter", "forEach", "reduce", "append", "extend",
    "keys", "values", "items", "update", "clear", "copy", "join", "split",
    "unwrap", "expect", "ok", "err", "and_then", "collect",
    # lifecycle hooks
    "setup", "setUp", "teardown", "tearDown", "dispose", "close",
    "componentDidMount", "componentWillUnmount", "ngOnInit", "ngOnDestroy",
    "useEffect", "useState", "connectedCallback", "disconnectedCallback",
})

# Generic names dropped from search results beyond depth 0.
DEFAULT_NOISE_NAMES: frozenset[str] = frozenset({
    "new", "default", "init", "from", "into", "clone", "drop", "fmt", "eq",
    "ne", "cmp", "hash", "serialize", "deserialize", "as_ref", "as_mut",
    "borrow", "borrow_mut", "deref", "deref_mut", "index", "index_mut",
    "next", "size_hint", "len", "is_empty", "get", "set", "push", "pop",
    "insert", "remove", "contains", "iter", "iter_mut", "into_iter",
    "unwrap", "expect", "ok", "err", "map", "and_then", "build", "builder",
    "with",
})

# Entry points are never dead code, whatever the graph says.
DEFAULT_ENTRY_POINT_NAMES: frozenset[str] = frozenset({"main", "index", "app", "start"})

TEST_PATH_INDICATORS: tuple[str, ...] = ("test", "spec")

DYNAMIC_NAME_INDICATORS: tuple[str, ...] = ("dynamic", "eval", "reflect")

"""
allocation - Decision Layer
===========================

Question this layer answers:
"Which items answer this request?"

```python
result = allocate(snapshot, "Supply Crate", AddCommand(series=82, quantity=5))
result.chosen     # first matching crates, snapshot order
result.shortfall  # how many we could not cover
```

Allocation is a PURE function:
- Same snapshot + same request = same items
- No side effects
- Testable without a channel

This layer does NOT:
- Put items in the offer (that's fsm)
- Talk to the partner (that's fsm via transport)
"""

from .allocator import (
    DEFAULT_CATEGORY,
    Allocation,
    allocate,
    filter_category,
    filter_series,
    series_pattern,
)

__all__ = [
    "DEFAULT_CATEGORY",
    "Allocation",
    "allocate",
    "filter_category",
    "filter_series",
    "series_pattern",
]

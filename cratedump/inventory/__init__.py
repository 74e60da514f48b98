"""
inventory - Grounded Holdings
=============================

Question this layer answers:
"What do we actually hold?"

```python
snapshot = await load_snapshot(channel, appid=440, contextid=2)
```

The snapshot:
- Is captured once per session
- Never changes after capture
- Is dropped at every terminal transition

This layer does NOT:
- Choose items (that's allocation)
- Put anything in the offer (that's fsm)
"""

from .items import Item
from .snapshot import InventorySnapshot, load_snapshot

__all__ = ["Item", "InventorySnapshot", "load_snapshot"]

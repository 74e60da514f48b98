"""
coordination - Governance Layer
===============================

Question this layer answers:
"Who is allowed to trade with us right now?"

```python
result = policy.evaluate(partner_id)
if not result.allowed:
    decline(partner_id, messages.BUSY)
```

What this layer enforces:
- At most one live session (SessionGate)
- Sessions only start for the accepted partner

This layer does NOT:
- Track trade phases (that's fsm)
- Deliver messages (that's transport)
"""

from .gate import SessionGate
from .policy import PolicyResult, PolicyViolation, ProposalPolicy

__all__ = ["SessionGate", "PolicyResult", "PolicyViolation", "ProposalPolicy"]

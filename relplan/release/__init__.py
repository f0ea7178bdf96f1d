"""Release planning.

- model: plan, step and channel types
- pins: explicit versions supplied by the caller
- filters / selector / cascade: per-step version resolution
- validator: channel rule verdicts
- builder: end-to-end plan assembly
- repository: the server contract and an in-memory implementation
"""

from __future__ import annotations

"""Heartbeat Monitor (hbmon).

Single-node monitor that demonstrates:
 - heartbeat-based liveness tracking for independently running services
 - edge-triggered failure detection with a fixed timeout threshold
 - self-healing (restart the failed service's container)

The implementation is intentionally small so it can be audited and explained.
"""

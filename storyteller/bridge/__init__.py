"""Bridge between agents and the surrounding world's signal layer.

Inbound:
  SignalScanner     scans a cube around each agent every N ticks and turns
                    powered/unpowered edges into signal_on / signal_off
                    external events (activations are cooldown-gated).
Outbound:
  EmissionTracker   one active emission per agent, shaped by a pattern
                    (constant, fade, pulsed, coded) and recomputed per tick.
  WebhookDispatcher POSTs story events to per-event URLs, best effort.
"""

from .emitter import ActiveEmission, EmissionTracker  # noqa: F401
from .patterns import PATTERNS, get_pattern, strength_at  # noqa: F401
from .scanner import SignalScanner  # noqa: F401
from .webhooks import WebhookDispatcher, build_payload  # noqa: F401

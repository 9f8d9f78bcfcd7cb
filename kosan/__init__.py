"""
Client-side booking core for the kos-kosan rental platform.

Typed access to the booking/payment API, the booking state projector,
the single-active-booking guard and the extension/cancellation workflows.
"""

__version__ = "1.0.0"

"""drainwatch - syslog drain verification harness.

Deploys a listener and two log producers, registers the listener as a
syslog drain for one producer, and verifies that only that producer's
lines arrive at the drain.
"""

__version__ = "0.1.0"

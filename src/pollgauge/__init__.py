"""pollgauge - republish a polled upstream integer as a Prometheus gauge."""

__version__ = "0.1.0"

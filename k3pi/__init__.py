"""k3pi - install k3OS on a fleet of nodes over SSH."""

__version__ = "0.1.0"

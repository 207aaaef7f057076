"""Hotspot modem library: host protocol and dispatcher, modem states, ring buffers, and System Fusion transmit and receive."""

__version__ = "0.1.0"
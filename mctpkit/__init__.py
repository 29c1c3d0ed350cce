"""MCTP headers, control messages, logging and serial/SMBus framing."""

__version__ = "0.1.0"
__all__ = ["control", "header", "log", "serial", "smbus", "vdpci"]
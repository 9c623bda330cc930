"""edgewaf - provision and manage an edge CDN web application firewall."""

__version__ = "0.4.0"

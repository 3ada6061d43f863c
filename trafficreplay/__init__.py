"""Parse TCP/IP frames, write pcap files, receive VXLAN traffic, rate-limit plugins and format output."""

__version__ = "0.1.0"
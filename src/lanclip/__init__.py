"""lanclip - share the clipboard over a LAN with multicast"""
__version__ = "0.1.0"

"""
mcbridge - Minecraft <-> Discord chat bridge

Relays chat and presence events between a game server's WebSocket event
socket and a Discord text channel.
"""

__version__ = "1.0.0"

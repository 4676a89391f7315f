"""Real-time story broadcast.

Components:
    - RoomRegistry: room id -> live connections.
    - BroadcastDispatcher: fan-out of a payload to a room.
    - ConnectionHandler: per-socket join/relay/cleanup state machine.
"""

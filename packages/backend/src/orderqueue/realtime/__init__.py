"""Real-time infrastructure — in-process broadcaster + WebSocket.

Learn: Events flow one way:
1. QueueService → Broadcaster.publish (after every successful write)
2. Broadcaster → every connected WebSocket (viewer screens)

A screen that was offline simply missed those events; on reconnect it
gets a fresh full-queue snapshot, so it never needs a replay.
"""

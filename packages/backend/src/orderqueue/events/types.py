"""Event type constants.

Learn: Centralizing event names as constants prevents typos between the
service that publishes and the screens that listen. Every event is sent
over the WebSocket as {"type": <name>, "data": <payload>}.
"""

# ─── Queue ───────────────────────────────────────────────

NEW_QUEUE_ITEM = "new-queue-item"          # data: the created QueueItem
QUEUE_UPDATED = "queue-updated"            # data: full queue snapshot (post-retention)
STATUS_UPDATED = "status-updated"          # data: {id, status, updatedAt}
FOLLOW_UP_ADDED = "follow-up-added"        # data: {id, followUp}
QUEUE_ITEM_DELETED = "queue-item-deleted"  # data: {id}

# ─── Products ────────────────────────────────────────────

PRODUCTS_UPDATED = "products-updated"      # data: full product list

"""orderqueue — shared order queue for a small production floor.

Staff add product orders to one queue, move them through statuses,
attach follow-up notes, and every connected screen sees the change live.
"""

__version__ = "0.1.0"

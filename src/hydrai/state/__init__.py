"""State layer.

Decoded stream events and the single-writer state they are applied to.
Only :meth:`hydrai.client.HydraiClient._on_frame` writes; everything else
reads snapshots or subscribes to the event bus.
"""

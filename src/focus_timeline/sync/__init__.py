"""
Sync subsystem.

Components:
- adapters.py: raw source rows -> UnifiedTask (bad rows dropped)
- aggregator.py: concurrent fetch of every source, guarded merge, publish
- edit_guard.py: ids under local, unconfirmed edit
- coordinator.py: intents -> optimistic local change + one remote write
- refresh.py: periodic aggregation loop
"""

"""
Focus timeline core.

Merges time blocks, project meetings and personal todos into one timeline,
keeps it in sync with the remote store, and lays it out in columns.
"""

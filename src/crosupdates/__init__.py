"""
crosupdates: Chrome OS update data pipeline.

Fetches the Chrome OS serving-builds dashboard and recovery image feed,
normalizes them into device/board records and caches the result.
"""

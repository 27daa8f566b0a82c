"""
Live match extraction for the Live Relay.
Locates live match cards in the source document, recovers team names and
round/map scores, and returns deduplicated snapshots.
"""

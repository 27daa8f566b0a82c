"""
Live Relay: drives periodic scans of the live document, keeps the page and the
feed hub connection healthy, and forwards live match state as wire messages.
"""

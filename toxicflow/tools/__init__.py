"""
Command-line tools: run detection on a feed, generate synthetic feeds.
"""

"""
FILE: kanmd/core/__init__.py
PURPOSE: Card store - codec, board store, card operations, and watcher
"""

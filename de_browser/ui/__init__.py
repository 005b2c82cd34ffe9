"""
Dash UI: layout, callbacks and the app factory.
"""

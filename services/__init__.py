"""
Services Package

- event_bus: topic-based notifications between the core and observers
- ticker_controller: owns the active exchange and renders the status line
"""

"""Event type constants for the event bus.

Use these constants when subscribing to or publishing events.

Example:
    from seawatch.core.events import EventTypes, get_event_bus

    bus = get_event_bus()
    bus.subscribe(EventTypes.ALERTS_CHANGED, handler)
    await bus.publish(EventTypes.ALERTS_CHANGED, {"alerts": [...]})
"""


class EventTypes:
    """Constants for event bus event types.

    Naming convention: ENTITY_ACTION (e.g., ALERTS_CHANGED)
    """

    # Alert events; payload {"alerts": list[Alert]} / {"metrics": AlertsMetrics}
    ALERTS_CHANGED = "alerts.changed"
    ALERT_METRICS_CHANGED = "alerts.metrics_changed"

    # Live data events; payload {"vessels", "alerts", "new_alerts", "timestamp"}
    LIVE_DATA_UPDATED = "live_data.updated"

    # Detection events; payload {"alerts": list[GhostVesselAlert]} / {"patterns": list[BehaviorPattern]}
    GHOST_FLEET_DETECTED = "ghost_fleet.detected"
    PATTERNS_CHANGED = "patterns.changed"

# Overview: Server-sent events stream fed by the realtime connection registry.

"""
GET /api/events

Browsers cannot set headers on EventSource, so the bearer token may also be
passed as ?token=. Each message is a JSON object:
- {"type": "notification", "notification": {...}} for the connected user
- {"type": "invalidate", "topics": [...]} for everyone
Idle connections receive a comment line every REALTIME_HEARTBEAT_SECONDS.
"""

import json

from flask import Blueprint, Response, current_app, jsonify, request

from ..decorators import bearer_token
from ..services import session_service


events_bp = Blueprint("events", __name__, url_prefix="/api")


def format_event(event: dict | None) -> str:
    if event is None:
        return ": keep-alive\n\n"
    return f"data: {json.dumps(event)}\n\n"


@events_bp.get("/events")
def stream_events():
    token = bearer_token() or request.args.get("token")
    context = session_service.validate_session(token) if token else None
    if not context:
        return jsonify({"error": "Authentication required"}), 401

    registry = current_app.extensions.get("realtime")
    if registry is None or not registry.is_open:
        return jsonify({"error": "Realtime updates unavailable"}), 503

    user = context.user
    subscription = registry.subscribe(user.id, user.area.value)
    heartbeat = current_app.config.get("REALTIME_HEARTBEAT_SECONDS", 25)

    def generate():
        try:
            yield format_event({"type": "ready", "user_id": user.id})
            for event in subscription.events(heartbeat):
                yield format_event(event)
        finally:
            registry.unsubscribe(subscription)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

from flask_socketio import emit
from scorekeeper import socketio, get_controller

NAMESPACE = '/ws'


def broadcast_state(state) -> None:
    """Controller observer: push every published snapshot to all clients."""
    socketio.emit('state_update', state.to_dict(), namespace=NAMESPACE)


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})
    emit('state_update', get_controller().ensure_loaded().to_dict())


def handle_request_state(data=None):
    emit('state_update', get_controller().ensure_loaded().to_dict())


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('request_state', handle_request_state, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)

    if testing:
        # Test-only mirror on default namespace
        socketio.on_event('connect', handle_connect, namespace='/')
        socketio.on_event('request_state', handle_request_state, namespace='/')
        socketio.on_event('ping', handle_ping, namespace='/')

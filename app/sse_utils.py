# app/sse_utils.py
import queue
import json
from flask import current_app


class MessageAnnouncer:
    """
    Manages Server-Sent Event listeners and message broadcasting.
    Uses thread-safe queues for listeners.
    """
    def __init__(self, maxsize: int = 10):
        self.listeners = []
        self.maxsize = maxsize

    def listen(self):
        """
        Adds a new listener queue.
        Returns the queue for the listener to consume messages from.
        """
        # Small maxsize bounds memory when a client disconnects uncleanly
        q = queue.Queue(maxsize=self.maxsize)
        self.listeners.append(q)
        current_app.logger.info(f"SSE Listener added. Total listeners: {len(self.listeners)}")
        return q

    def unlisten(self, q):
        try:
            self.listeners.remove(q)
        except ValueError:
            pass

    def announce(self, msg: str):
        """
        Sends a message to all active listeners.
        Removes listeners whose queues are full (indicating potential disconnection).
        """
        # Iterate in reverse to safely remove listeners
        for i in reversed(range(len(self.listeners))):
            try:
                self.listeners[i].put_nowait(msg)
            except queue.Full:
                del self.listeners[i]
                current_app.logger.info(f"SSE Listener removed (queue full). Total listeners: {len(self.listeners)}")

        current_app.logger.debug(f"SSE Announced message to {len(self.listeners)} listeners.")


# Global instance - accessed by routes and services
announcer = MessageAnnouncer()


def format_sse(data: dict, event: str = None) -> str:
    """
    Formats data into the Server-Sent Event message format.

    Args:
        data: The dictionary payload for the event.
        event: Optional event type name.

    Returns:
        A string formatted according to the SSE specification.
    """
    json_data = json.dumps(data)
    msg = f'data: {json_data}\n\n'
    if event is not None:
        msg = f'event: {event}\n{msg}'
    return msg


def publish(event: str, data: dict):
    """Announce a change to every stream subscriber."""
    announcer.announce(format_sse(data, event=event))

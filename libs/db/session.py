from starlette.requests import HTTPConnection

from libs.db.store import DocumentStore


def get_document_store(connection: HTTPConnection) -> DocumentStore:
    """
    FastAPI dependency returning the application's document store.

    Works for both HTTP and WebSocket routes; tests swap it out through
    ``app.dependency_overrides``.
    """
    return connection.app.state.document_store

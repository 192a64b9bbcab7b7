"""
=============================================================================
minihttp - A MINIMAL HTTP/1.1 FILE SERVER
=============================================================================

Serves files from a document root over plain HTTP/1.1, one request per
connection, one thread per connection.

    $ minihttp --port 8080 --root ./public
    Mini HTTP Server running on http://localhost:8080

    $ curl -i http://localhost:8080/
    HTTP/1.1 200 OK
    Content-Type: text/html
    Content-Length: 512
    Connection: close

Library use:

    from minihttp import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(document_root="./public")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, ConnectionHandler, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "ConnectionHandler", "ServerConfig", "create_app", "__version__"]

"""Permissive CORS headers shared by every endpoint."""

from fastapi import FastAPI, Request, Response

ALLOWED_METHODS = ["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"]
ALLOWED_HEADERS = [
    "X-CSRF-Token",
    "X-Requested-With",
    "Accept",
    "Accept-Version",
    "Content-Length",
    "Content-MD5",
    "Content-Type",
    "Date",
    "X-Api-Version",
]

CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ",".join(ALLOWED_METHODS),
    "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
}


def install_cors(app: FastAPI) -> None:
    """Answer every OPTIONS with 200 and put the CORS headers on every response.

    Preflights are not checked against the allowed methods or headers, and
    the headers are sent whether or not the request carries an Origin.
    """

    @app.middleware("http")
    async def cors_headers(request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

"""
SafeHarbor forum server: serves the community forum and anonymous identity API.
Set env: SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY (or SUPABASE_ANON_KEY), SECRET_KEY.
For a local throwaway store set FORUM_STORE=memory.
Run: python server.py  →  http://127.0.0.1:5001/
"""
import secrets
from functools import wraps

from flask import Flask, Response, jsonify, request, session

from api.config import load_settings
from api.forum import get_forum_service, handle_get, handle_post
from api.identity import AnonymousIdentity
from api.log import get_logger
from api.ratelimit import ForumRateLimits, RateLimiter

logger = get_logger("server")
settings = load_settings()

app = Flask(__name__)
app.config.update(
    SECRET_KEY=settings.secret_key or secrets.token_hex(32),
    SESSION_COOKIE_HTTPONLY=True,
    SESSION_COOKIE_SAMESITE="Strict",
)
# session.permanent stays False: the cookie, and the anonymous id in it, dies with the browser session.

api_limiter = RateLimiter(settings.api_rate_max, settings.api_rate_window)
forum_limits = ForumRateLimits.from_settings(settings)


# ── Security headers ──

@app.after_request
def add_security_headers(response):
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers["Permissions-Policy"] = "camera=(), geolocation=(), payment=()"
    response.headers["Cache-Control"] = "no-store"
    return response


# ── Rate limiting ──

def rate_limited(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if not api_limiter.hit(request.remote_addr or "unknown"):
            return jsonify({"error": "Too many requests. Try again shortly."}), 429
        return f(*args, **kwargs)
    return decorated


def cors_preflight(methods: str):
    r = Response("", 204)
    r.headers["Access-Control-Allow-Origin"] = "*"
    r.headers["Access-Control-Allow-Methods"] = methods
    r.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return r


def current_identity() -> AnonymousIdentity:
    return AnonymousIdentity(session)


# --- API routes ---

@app.route("/api/forum", methods=["GET", "POST", "OPTIONS"])
@rate_limited
def forum():
    if request.method == "OPTIONS":
        return cors_preflight("GET, POST, OPTIONS")
    if request.method == "GET":
        status, body = handle_get(request.args.to_dict(), service_factory=get_forum_service)
        return jsonify(body), status

    data = request.get_json(force=True, silent=True)
    default_author = None
    if isinstance(data, dict) and not data.get("authorId"):
        default_author = current_identity().get_or_create_id()
    status, body = handle_post(
        data,
        service_factory=get_forum_service,
        limits=forum_limits,
        default_author=default_author,
    )
    return jsonify(body), status


@app.route("/api/identity", methods=["GET"])
@rate_limited
def identity():
    """Current anonymous id and pseudonym, created on first use in this session."""
    return jsonify(current_identity().to_dict())


@app.route("/api/identity", methods=["POST"])
@rate_limited
def regenerate_identity():
    ident = current_identity()
    ident.regenerate_id()
    return jsonify(ident.to_dict())


@app.errorhandler(404)
def not_found(_error):
    return jsonify({"error": "Not found"}), 404


@app.errorhandler(405)
def method_not_allowed(_error):
    return jsonify({"error": "Method not allowed"}), 405


if __name__ == "__main__":
    print(f"SafeHarbor forum running at http://127.0.0.1:{settings.port}/")
    if not settings.secret_key:
        logger.warning("SECRET_KEY not set — anonymous sessions reset whenever the server restarts.")
    if not settings.supabase_configured and settings.forum_store != "memory":
        logger.warning("SUPABASE_URL / key not set — forum routes will answer 503.")
    app.run(host="0.0.0.0", port=settings.port, debug=settings.debug)

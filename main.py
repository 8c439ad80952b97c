"""Passgate - account signup, login and password reset."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import get_settings
from app.database import check_connection, get_db
from app.dependencies import CurrentUser, SessionContext, commit_session, get_current_user, get_session
from app.rate_limit import limiter
from app.services.auth import INVALID_RESET_TOKEN, get_auth_service
from app.services.mail import get_mail_service

BASE_DIR = Path(__file__).resolve().parent
GENERIC_ERROR = "An error occurred"

# Logging
logger = logging.getLogger("passgate")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    try:
        check_connection()
        logger.info("Database connected successfully")
    except SQLAlchemyError:
        logger.exception("Database connection error")
    yield


app = FastAPI(title="Passgate", version="0.1.0", lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self'; img-src 'self' data:; form-action 'self'"
        )
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 64 * 1024  # forms only

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return HTMLResponse(content="<h1>413</h1><p>Request body too large</p>", status_code=413)
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = ("/signup", "/login", "/forgot-password", "/reset-password/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        # Reset paths carry the token; log only the prefix
        path = request.url.path
        if request.method == "POST" and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logged_path = "/reset-password/..." if path.startswith("/reset-password/") else path
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                logged_path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(AuditLogMiddleware)

# Static files
app.mount("/static", StaticFiles(directory=BASE_DIR / "static"), name="static")

# Templates
templates = Jinja2Templates(directory=BASE_DIR / "templates")


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    return HTMLResponse(content="<h1>429</h1><p>Too many requests. Please try again later.</p>", status_code=429)


# --- HTTP errors, including the 404 fallback for unmatched routes ---
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> Response:
    """Render HTTP errors as small HTML pages."""
    if exc.status_code == 404:
        logger.info("404 Error: %s %s not found", request.method, request.url.path)
        return HTMLResponse(content="404: Page not found", status_code=404)
    return HTMLResponse(
        content=f"<h1>{exc.status_code}</h1><p>{exc.detail}</p>",
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


# --- Response helpers ---
def render(
    request: Request,
    db: Session,
    session: SessionContext,
    name: str,
    context: dict | None = None,
) -> Response:
    """Render a page with the session's pending flash messages, then commit the session."""
    messages = session.pop_flashes()
    response = templates.TemplateResponse(request, name, {"messages": messages, **(context or {})})
    return commit_session(db, response, session)


def redirect(url: str, db: Session, session: SessionContext, message: str | None = None) -> Response:
    """Redirect, optionally queueing a flash message for the next page."""
    if message:
        session.flash(message)
    return commit_session(db, RedirectResponse(url=url, status_code=302), session)


def fail(url: str, db: Session, session: SessionContext) -> Response:
    """Recover from a database error inside a handler."""
    db.rollback()
    return redirect(url, db, session, GENERIC_ERROR)


def reset_url(token: str) -> str:
    """Build the emailed link from configuration only, never from request headers."""
    base = get_settings().APP_BASE_URL.rstrip("/")
    return f"{base}/reset-password/{token}"


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "passgate", "version": "0.1.0"}


# --- Pages ---
@app.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    user: CurrentUser | None = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Render the landing page."""
    return render(request, db, session, "index.html", {"user": user})


@app.get("/home")
def home_page() -> FileResponse:
    return FileResponse(BASE_DIR / "static" / "home.html")


@app.get("/about")
def about_page() -> FileResponse:
    return FileResponse(BASE_DIR / "static" / "about.html")


@app.get("/contact")
def contact_page() -> FileResponse:
    return FileResponse(BASE_DIR / "static" / "contact.html")


# --- Signup ---
@app.get("/signup", response_class=HTMLResponse)
def signup_page(
    request: Request,
    user: CurrentUser | None = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Render signup page."""
    if user:
        return redirect("/", db, session)
    return render(request, db, session, "signup.html")


@app.post("/signup")
@limiter.limit("5/minute")
def signup_submit(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmpassword"),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Handle signup form submission."""
    auth_service = get_auth_service()
    try:
        result = auth_service.register(db, name, email, password, confirm_password)
    except SQLAlchemyError:
        logger.exception("Error during signup")
        return fail("/signup", db, session)

    if not result.success:
        return redirect("/signup", db, session, result.error)

    logger.info("New user %s signed up", result.user_id)
    session.login(result.user_id)  # type: ignore[arg-type]
    return redirect("/", db, session)


# --- Login ---
@app.get("/login", response_class=HTMLResponse)
def login_page(
    request: Request,
    user: CurrentUser | None = Depends(get_current_user),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Render login page."""
    if user:
        return redirect("/", db, session)
    return render(request, db, session, "login.html")


@app.post("/login")
@limiter.limit("10/minute")
def login_submit(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Handle login form submission."""
    auth_service = get_auth_service()
    try:
        result = auth_service.authenticate(db, email, password)
    except SQLAlchemyError:
        logger.exception("Error during user lookup")
        return fail("/login", db, session)

    if not result.success:
        logger.info("Failed login attempt")
        return redirect("/login", db, session, result.error)

    logger.info("User %s logged in", result.user_id)
    session.login(result.user_id)  # type: ignore[arg-type]
    return redirect("/", db, session)


@app.get("/logout")
def logout(session: SessionContext = Depends(get_session), db: Session = Depends(get_db)) -> Response:
    """Drop the user from the session and go home."""
    session.logout()
    return redirect("/", db, session)


# --- Forgot password ---
@app.get("/forgot-password", response_class=HTMLResponse)
def forgot_password_page(
    request: Request,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Render forgot password page."""
    return render(request, db, session, "forgot_password.html")


@app.post("/forgot-password")
@limiter.limit("3/minute")
def forgot_password_submit(
    request: Request,
    email: str = Form(""),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Issue a reset token and email the link."""
    auth_service = get_auth_service()
    try:
        issued = auth_service.request_password_reset(db, email)
    except SQLAlchemyError:
        logger.exception("Error issuing password reset token")
        return fail("/forgot-password", db, session)

    if not issued:
        return redirect("/forgot-password", db, session, "No user with that email address found")

    user, token = issued
    if not get_mail_service().send_password_reset(user.email, reset_url(token)):
        logger.warning("Password reset email for user %s was not sent", user.id)
        return redirect(
            "/forgot-password", db, session, "Could not send password reset email. Please try again later."
        )

    return redirect("/forgot-password", db, session, "Password reset email sent")


# --- Reset password ---
@app.get("/reset-password/{token}", response_class=HTMLResponse)
def reset_password_page(
    request: Request,
    token: str,
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Render the new-password form for a live token."""
    try:
        user = get_auth_service().find_by_reset_token(db, token)
    except SQLAlchemyError:
        logger.exception("Error during token lookup")
        return fail("/forgot-password", db, session)

    if not user:
        logger.info("Reset page requested with an invalid or expired token")
        return redirect("/forgot-password", db, session, INVALID_RESET_TOKEN)

    return render(request, db, session, "reset_password.html", {"token": token})


@app.post("/reset-password/{token}")
@limiter.limit("5/minute")
def reset_password_submit(
    request: Request,
    token: str,
    password: str = Form(""),
    confirm_password: str = Form("", alias="confirmPassword"),
    session: SessionContext = Depends(get_session),
    db: Session = Depends(get_db),
) -> Response:
    """Consume the token and store the new password."""
    auth_service = get_auth_service()
    try:
        result = auth_service.reset_password(db, token, password, confirm_password)
    except SQLAlchemyError:
        logger.exception("Error resetting password")
        return fail(f"/reset-password/{token}", db, session)

    if not result.success:
        if result.error == INVALID_RESET_TOKEN:
            return redirect("/forgot-password", db, session, result.error)
        return redirect(f"/reset-password/{token}", db, session, result.error)

    logger.info("Password reset successfully for user %s", result.user_id)
    return redirect("/login", db, session, "Password reset successfully")


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)

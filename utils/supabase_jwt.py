from __future__ import annotations

import json
import time
from functools import wraps
from typing import Any, Dict, Optional

import httpx
import jwt as pyjwt
from cachetools import TTLCache
from flask import current_app, g, jsonify, request

from utils.responses import unauthorized, server_error


_jwks_cache: TTLCache[str, Dict[str, Any]] = TTLCache(maxsize=4, ttl=15 * 60)
_rate_cache: TTLCache[str, int] = TTLCache(maxsize=10000, ttl=60)

DEFAULT_RATE_LIMIT_PER_MINUTE = 60


class JwtValidationError(Exception):
    pass


def _allowed_roles() -> set[str]:
    roles_csv = (current_app.config.get("ALLOWED_ROLES") or "STAFF,MANAGER,ADMIN").upper()
    return {r.strip() for r in roles_csv.split(",") if r.strip()}


def _supabase_url() -> str:
    supabase_url = (current_app.config.get("SUPABASE_URL") or "").rstrip("/")
    if not supabase_url:
        raise RuntimeError("SUPABASE_URL missing in configuration")
    return supabase_url


def _fetch_jwks() -> Dict[str, Any]:
    url = f"{_supabase_url()}/auth/v1/.well-known/jwks.json"
    if url in _jwks_cache:
        return _jwks_cache[url]
    with httpx.Client(timeout=5.0) as c:
        r = c.get(url)
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict) or "keys" not in data:
            raise JwtValidationError("Invalid JWKS document")
        _jwks_cache[url] = data
        return data


def _select_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    for k in jwks.get("keys", []):
        if k.get("kid") == kid:
            return k
    return None


def _public_key_from_jwk(jwk: Dict[str, Any]):
    alg = (jwk.get("alg") or "").upper()
    if alg.startswith("ES") or jwk.get("kty") == "EC":
        return pyjwt.algorithms.ECAlgorithm.from_jwk(json.dumps(jwk))
    return pyjwt.algorithms.RSAAlgorithm.from_jwk(json.dumps(jwk))


def _expected_iss() -> str:
    iss = current_app.config.get("SUPABASE_JWT_ISS")
    if iss:
        return iss.rstrip("/")
    return f"{_supabase_url()}/auth/v1"


def _claim_role(claims: Dict[str, Any]) -> str:
    role = (
        (claims.get("app_metadata") or {}).get("role")
        or (claims.get("user_metadata") or {}).get("role")
    )
    role = str(role).upper() if role else "STAFF"
    return role if role in _allowed_roles() else "STAFF"


def verify_supabase_jwt(bearer_token: str) -> Dict[str, Any]:
    """Validate a Supabase access token and return its claims.

    Asymmetric tokens (RS256/ES256) are checked against the project's JWKS,
    legacy HS256 tokens against SUPABASE_JWT_SECRET.

    Raises JwtValidationError on failure.
    """
    token = bearer_token.strip()
    if token.lower().startswith("bearer "):
        token = token.split(" ", 1)[1].strip()
    if not token:
        raise JwtValidationError("Empty token")

    try:
        header = pyjwt.get_unverified_header(token)
    except Exception as e:
        raise JwtValidationError(f"Invalid token header: {e}")

    alg = (header.get("alg") or "").upper()
    options = {"require": ["sub", "exp", "iat"], "verify_signature": True}
    audience = current_app.config.get("SUPABASE_JWT_AUD")

    try:
        expected_issuer = _expected_iss()
        if alg in ("RS256", "ES256"):
            kid = header.get("kid")
            if not kid:
                raise JwtValidationError("Missing kid in token header")
            jwk = _select_key(_fetch_jwks(), kid)
            if not jwk:
                raise JwtValidationError("Signing key not found")
            key = _public_key_from_jwk(jwk)
        elif alg == "HS256":
            key = current_app.config.get("SUPABASE_JWT_SECRET") or ""
            if not key:
                raise JwtValidationError("HS256 token but SUPABASE_JWT_SECRET not configured")
        else:
            raise JwtValidationError(f"Unsupported JWT alg: {alg}")

        claims = pyjwt.decode(
            token,
            key,
            algorithms=[alg],
            issuer=expected_issuer,
            audience=audience if audience else None,
            options=options,
        )
    except Exception as e:
        current_app.logger.warning("JWT validation failed: %s", e)
        raise JwtValidationError("Invalid or expired token")

    now = int(time.time())
    if int(claims.get("nbf", now)) > now + 60:
        raise JwtValidationError("Token not yet valid")

    claims["role"] = _claim_role(claims)
    return claims


def _rate_limit_exceeded(ip: str) -> bool:
    count = _rate_cache.get(ip, 0) + 1
    _rate_cache[ip] = count
    limit = current_app.config.get("RATE_LIMIT_PER_MINUTE") or DEFAULT_RATE_LIMIT_PER_MINUTE
    return count > limit


def auth_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        # Basic IP-based rate limiting (best-effort)
        ip = request.headers.get("X-Forwarded-For", request.remote_addr or "?")
        if _rate_limit_exceeded(ip):
            return jsonify({"error": "Too Many Requests"}), 429

        if current_app.config.get("AUTH_DISABLED"):
            g.user_claims, g.user_id, g.role = {}, None, "ADMIN"
            return fn(*args, **kwargs)

        auth_header = request.headers.get("Authorization", "").strip()
        if not auth_header:
            return unauthorized("Missing Authorization header")

        try:
            claims = verify_supabase_jwt(auth_header)
        except JwtValidationError as e:
            return unauthorized(str(e))
        except Exception:
            current_app.logger.exception("JWT verification error")
            return server_error("JWT verification error")

        g.user_claims = claims
        g.user_id = claims.get("sub")
        g.email = claims.get("email")
        g.role = claims.get("role")
        return fn(*args, **kwargs)

    return wrapper

"""Demo FastAPI application with secure escrow middleware.

This application demonstrates the escrow middleware in action.
Run with: python demo_app.py

Then try:
  curl -i -X POST http://localhost:8000/api/payments -d amount=100
  # 303 See Other, Location: /api/payments, Set-Cookie: escrow=<id>.<nonce>
  curl -i http://localhost:8000/api/payments --cookie "escrow=<id>.<nonce>"
  # the escrowed payment receipt, exactly once
"""

import asyncio
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, Form
from fastapi.responses import HTMLResponse

from secure_escrow.adapters.asgi import ASGISecureEscrowMiddleware
from secure_escrow.config import EscrowConfig
from secure_escrow.core.cleanup import escrow_cleanup
from secure_escrow.observability.logging import configure_logging
from secure_escrow.rewriter import DomainRewriter, html_attributes
from secure_escrow.routing import StarletteRouteClassifier, escrow
from secure_escrow.storage import build_store

configure_logging(level="INFO", json_output=False)

config = EscrowConfig.from_env()
store = build_store(config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Abandoned escrows are reaped once per TTL period (memory store only)
    async with escrow_cleanup(store, interval_seconds=config.ttl_seconds) as reaper:
        app.state.escrow_reaper = reaper
        yield


app = FastAPI(
    title="Secure Escrow Demo",
    description="Demo API showing POST/redirect/GET through response escrow",
    version="0.1.0",
    lifespan=lifespan,
)

classifier = StarletteRouteClassifier(app)
rewriter = DomainRewriter(config, classifier)

app.add_middleware(
    ASGISecureEscrowMiddleware,
    store=store,
    classifier=classifier,
    config=config,
)


@app.get("/", response_class=HTMLResponse)
async def root():
    """Payment form whose submission goes through escrow."""
    options = rewriter.escrow_form_options("/api/payments", {"html": {"class": "payment"}})
    return f"""
    <form method="post" action="{options['url']}" {html_attributes(options['html'])}>
      <input name="amount" value="100">
      <button type="submit">Pay</button>
    </form>
    """


@app.get("/api/payments", response_class=HTMLResponse)
async def payment_form():
    """Reached when the escrow token is missing, expired or already used."""
    return "<p>No pending payment receipt.</p>"


@app.post("/api/payments", response_class=HTMLResponse)
@escrow
async def create_payment(amount: int = Form(...)):
    """Create a payment.

    The receipt is escrowed; reloading the page after the redirect does not
    resubmit the payment.
    """
    await asyncio.sleep(0.1)

    payment_id = f"pay_{int(time.time() * 1000)}"
    return (
        f"<p>Payment {payment_id} of {amount} accepted at "
        f"{datetime.now(UTC).isoformat()}.</p>"
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")

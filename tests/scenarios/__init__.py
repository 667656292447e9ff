"""End-to-end scenario tests for the secure escrow middleware.

Each scenario drives a FastAPI application through the ASGI adapter and
checks one aspect of the escrow flow from the client's point of view.
"""

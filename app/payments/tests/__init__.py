"""
Tests for payments app.

This package contains test modules for:
- test_stripe_adapter.py: StripeAdapter, idempotency keys, webhook signatures
- test_metadata.py: Payment metadata and minor unit conversion
- test_orchestrator.py: PaymentOrchestrator operations and webhook flow
- test_handlers.py: Webhook event handlers
- test_ledger.py: Processed-event ledger and WebhookEvent
- test_tasks.py: Celery tasks
- test_views.py: API and webhook endpoint tests
- test_admin.py: Webhook ledger admin action

Usage:
    pytest payments/tests/
    pytest payments/tests/test_orchestrator.py
"""

"""
Payments app for Stripe settlement of services plans.

This app handles:
- Payment intent creation priced from plan items
- Settlement of succeeded payments onto service items
- Cancellation and refunds
- Webhook event handling

Related apps:
    - plans: Services plans, items and the cost estimator

Usage:
    from payments.services import PaymentOrchestrator

    orchestrator = PaymentOrchestrator()
    intent = orchestrator.create_payment_intent(plan_id)
    orchestrator.handle_webhook(request.body, request.headers.get("Stripe-Signature"))
"""

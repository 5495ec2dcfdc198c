"""
Services layer - business logic goes here, not in routes.

DESIGN PRINCIPLE:
- Every inbound action passes the access gate, then the store,
  then (optionally) an engine, then the notification dispatcher
- Engines hold no state of their own; they read the store at call time
- Notifications are best-effort and never fail the mutation that caused them
"""

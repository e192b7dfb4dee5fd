"""
Voice Agent CI engine.

Evaluates streams of voice-call telemetry events against a fixed set of
conversational-compliance rules, one session per room:
- first agent response within 3000 ms of call start
- no dead air over 4000 ms unless the agent said "hold"
- the agent says "verify" or "confirm" at least once
- at most one customer barge-in

Rule violations are results (status "fail" + reason), not exceptions.
"""

"""
Cash-Flow Valuation Engine

Modules:
- cashflows / leg: coupons, bullet flows, leg inspectors and accruals
- daycount / rates: day counters and interest-rate conventions
- curves: flat-forward, zero and zero-spreaded discount curves
- yield_analytics: NPV, BPS, duration, convexity, BPV under a flat yield
- curve_analytics: NPV, BPS, ATM rate, spreaded NPV against a curve
- implied: implied yield (IRR) and Z-spread
- solvers: bracketing 1-D root finders
- risk: bump-and-reprice DV01/duration/convexity
- report: cashflow and curve diagnostic tables
- config / errors: settings, constants, exception types
"""

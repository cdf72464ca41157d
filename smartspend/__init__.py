"""
Smart Spend AI - Source Package

A profile-based expense ledger with AI-assisted transaction import,
AI-generated financial analysis and multi-currency display.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → Ledger changes
2. Treat every AI response as untrusted input
3. Fail loudly, never guess missing fields
4. One ledger, one currency, at all times
5. Every user action is auditable
"""

__version__ = "1.0.0"
__author__ = "Smart Spend Team"

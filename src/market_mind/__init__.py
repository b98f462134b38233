"""market-mind: AI market-intelligence terminal.

Orchestrates persona analyses and market scans against a hosted generative
model, tracks request budgets, and keeps results, holdings and saved scans on
local disk between runs.
"""

__version__ = "0.3.0"

"""
BrowserBot - an autonomous browser agent.

Drives Chromium via Playwright and lets an LLM decide each browser action
in a bounded observe-reason-act loop, with page snapshots compressed to
keep the model's context small.
"""

__version__ = "0.1.0"
__author__ = "BrowserBot Contributors"

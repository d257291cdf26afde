"""releasegate run monitor — read-only rendering of runs and the Run Ledger.

The monitor never maintains its own state. Run history is re-read from
the ledger on every call.

Modules
-------
renderer
    ``RunRenderer`` turns a ``RunResult`` or a run's ledger entries into
    Rich renderables for terminal display.
"""

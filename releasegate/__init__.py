"""releasegate: change-gated build, publish, and deploy pipeline.

One run takes a source tree from "changed since the reference branch" to
"running on the deploy target":
  - Automated checks ahead of the gate
  - Change detection against a pinned reference revision
  - Monotonic version bump, committed before any build
  - Single-artifact build, published immutably under its version
  - Exact-version retrieval with digest verification
  - Remote deploy as an explicit step state machine over SSH
  - Every stage transition sealed in a hash-chained Run Ledger
"""

__version__ = "0.1.0"
__description__ = "Change-gated build, publish, and deploy pipeline"

from releasegate.core.orchestrator import Orchestrator
from releasegate.cli.app import app as cli

__all__ = ["Orchestrator", "cli", "__version__"]

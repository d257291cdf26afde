"""Bridge layer between releasegate and the outside world.

Every process the pipeline spawns goes through this package, so the core
stages stay pure functions of their declared inputs.

Modules
-------
shell
    ``run_command()``: the single subprocess entry point, returning a
    ``CommandResult`` with exit code and captured output.
git
    ``GitRevisionSource``: resolves refs, diffs two pinned revisions, and
    commits (and optionally pushes) the version file via the ``git`` CLI.
ssh
    ``SshTransport``: ``scp``/``ssh`` with strict host-key checking for
    transferring artifacts and running commands on the deploy target.
"""

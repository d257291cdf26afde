"""Tests for the shell, ssh and git bridges."""

from __future__ import annotations

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

from releasegate.bridge import ssh as ssh_bridge
from releasegate.bridge.git import GitRevisionSource
from releasegate.bridge.shell import CommandError, CommandResult, run_command
from releasegate.bridge.ssh import SshTransport, TransportError
from releasegate.config import ReleaseGateSettings
from releasegate.core.errors import ConfigurationError, VersionBumpError
from releasegate.core.version_manager import VersionFile, VersionManager
from releasegate.models.config import DeploymentTarget, PipelineConfig


class TestRunCommand:
    def test_captures_output(self):
        result = run_command([sys.executable, "-c", "print('hello')"])
        assert result.ok
        assert result.stdout.strip() == "hello"

    def test_non_zero_exit_is_returned(self):
        result = run_command([sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(4)"])
        assert result.exit_code == 4
        assert result.output == "bad"

    def test_env_is_merged(self):
        result = run_command(
            [sys.executable, "-c", "import os; print(os.environ['RG_TEST'], 'PATH' in os.environ)"],
            env={"RG_TEST": "x"},
        )
        assert result.stdout.split() == ["x", "True"]

    def test_missing_binary(self):
        with pytest.raises(CommandError, match="Could not run"):
            run_command(["releasegate-no-such-binary"])

    def test_timeout(self):
        with pytest.raises(CommandError, match="timed out"):
            run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)


class _Recorder:
    """Stands in for run_command; exit codes keyed by program name."""

    def __init__(self) -> None:
        self.argvs: list[list[str]] = []
        self.exit_codes: dict[str, int] = {}

    def __call__(self, command, **kwargs) -> CommandResult:
        self.argvs.append(list(command))
        return CommandResult(command=list(command), exit_code=self.exit_codes.get(command[0], 0))


class TestSshTransport:
    @pytest.fixture
    def calls(self, monkeypatch) -> _Recorder:
        recorder = _Recorder()
        monkeypatch.setattr(ssh_bridge, "run_command", recorder)
        return recorder

    @pytest.fixture
    def transport(self, tmp_dir: Path) -> SshTransport:
        return SshTransport(DeploymentTarget(
            host="10.0.4.17",
            port=2222,
            ssh_key_path=tmp_dir / "id_ed25519",
            known_hosts_path=tmp_dir / "known_hosts",
        ))

    def test_host_keys_always_verified(self, transport, calls, tmp_dir: Path):
        transport.execute("true")
        argv = calls.argvs[0]
        assert argv[0] == "ssh"
        assert "StrictHostKeyChecking=yes" in argv
        assert "BatchMode=yes" in argv
        assert f"UserKnownHostsFile={tmp_dir / 'known_hosts'}" in argv
        assert argv[argv.index("-i") + 1] == str(tmp_dir / "id_ed25519")
        assert argv[argv.index("-p") + 1] == "2222"
        assert argv[-2:] == ["ec2-user@10.0.4.17", "true"]

    def test_copy(self, transport, calls, tmp_dir: Path):
        transport.copy(tmp_dir / "a.zip", "/home/ec2-user/a.zip")
        argv = calls.argvs[0]
        assert argv[0] == "scp"
        assert argv[argv.index("-P") + 1] == "2222"
        assert argv[-1] == "ec2-user@10.0.4.17:/home/ec2-user/a.zip"

    def test_copy_failure_raises(self, transport, calls, tmp_dir: Path):
        calls.exit_codes["scp"] = 1
        with pytest.raises(TransportError, match="scp"):
            transport.copy(tmp_dir / "a.zip", "/tmp/a.zip")

    def test_remote_exit_code_returned(self, transport, calls):
        calls.exit_codes["ssh"] = 3
        assert transport.execute("false").exit_code == 3

    def test_connection_failure_raises(self, transport, calls):
        calls.exit_codes["ssh"] = 255
        with pytest.raises(TransportError, match="ssh to ec2-user@10.0.4.17 failed"):
            transport.execute("true")


def _git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, check=True, capture_output=True)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
class TestGitRevisionSource:
    @pytest.fixture
    def repo(self, tmp_dir: Path) -> Path:
        repo = tmp_dir / "repo"
        repo.mkdir()
        _git(repo, "init", "-q")
        (repo / "version.txt").write_text("1.2.3\n", encoding="utf-8")
        (repo / "app.py").write_text("print('v1')\n", encoding="utf-8")
        _git(repo, "add", ".")
        _git(repo, "-c", "user.name=t", "-c", "user.email=t@example.test", "commit", "-q", "-m", "init")
        _git(repo, "tag", "base")
        return repo

    def test_resolve(self, repo: Path):
        source = GitRevisionSource(repo)
        rev = source.resolve("HEAD")
        assert len(rev) == 40
        assert source.resolve("base") == rev

    def test_resolve_unknown_ref(self, repo: Path):
        with pytest.raises(ConfigurationError, match="origin/nope"):
            GitRevisionSource(repo).resolve("origin/nope")

    def test_diff(self, repo: Path):
        source = GitRevisionSource(repo)
        base = source.resolve("HEAD")
        (repo / "app.py").write_text("print('v2')\n", encoding="utf-8")
        changed = source.commit([repo / "app.py"], "change app")

        assert source.diff(base, base) is False
        assert source.diff(changed, base) is True

    def test_commit_records_only_given_files(self, repo: Path):
        source = GitRevisionSource(repo)
        before = source.resolve("HEAD")
        (repo / "version.txt").write_text("1.2.4\n", encoding="utf-8")
        (repo / "scratch.txt").write_text("untracked\n", encoding="utf-8")

        after = source.commit([Path("version.txt")], "Bump version to 1.2.4")

        assert after != before
        assert after == source.resolve("HEAD")
        log = subprocess.run(
            ["git", "show", "--name-only", "--format=%s", "HEAD"],
            cwd=repo, capture_output=True, text=True, check=True,
        ).stdout.split()
        assert log[:4] == ["Bump", "version", "to", "1.2.4"]
        assert "scratch.txt" not in log

    def _status(self, repo: Path) -> str:
        return subprocess.run(
            ["git", "status", "--porcelain"], cwd=repo, capture_output=True, text=True, check=True,
        ).stdout

    def test_rejected_push_drops_local_commit(self, repo: Path):
        source = GitRevisionSource(repo, push_remote="no-such-remote")
        before = source.resolve("HEAD")
        (repo / "version.txt").write_text("1.2.4\n", encoding="utf-8")

        with pytest.raises(VersionBumpError, match="push no-such-remote"):
            source.commit([Path("version.txt")], "Bump version to 1.2.4")

        assert source.resolve("HEAD") == before
        assert self._status(repo).strip() == "M version.txt"

    def test_failed_bump_leaves_file_matching_history(self, repo: Path):
        source = GitRevisionSource(repo, push_remote="no-such-remote")
        before = source.resolve("HEAD")
        manager = VersionManager(VersionFile(repo / "version.txt"), source)

        with pytest.raises(VersionBumpError):
            manager.bump(manager.current())

        assert (repo / "version.txt").read_text(encoding="utf-8") == "1.2.3\n"
        assert source.resolve("HEAD") == before
        assert self._status(repo) == ""

    def test_version_file_resolved_in_source_tree(self, repo: Path, tmp_dir: Path, monkeypatch):
        elsewhere = tmp_dir / "ci"
        elsewhere.mkdir()
        (elsewhere / "version.txt").write_text("9.9.9\n", encoding="utf-8")
        monkeypatch.chdir(elsewhere)

        config = PipelineConfig.from_settings(
            ReleaseGateSettings(source_tree=repo, version_file=Path("version.txt"))
        )
        manager = VersionManager(VersionFile(config.version_file), GitRevisionSource(repo))
        new = manager.bump(manager.current())

        assert str(new) == "1.2.4"
        assert (repo / "version.txt").read_text(encoding="utf-8") == "1.2.4\n"
        assert (elsewhere / "version.txt").read_text(encoding="utf-8") == "9.9.9\n"
        assert self._status(repo) == ""

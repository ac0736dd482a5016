# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

from pathlib import Path
from unittest.mock import Mock, patch

from conftest import MemoryConfigStore, make_store
from typer.testing import CliRunner

from gerritcmd.cli import _push_refspec, app
from gerritcmd.endpoints import EndpointResolver
from gerritcmd.errors import SSHCommandError
from gerritcmd.gerrit.models import ChangeInfo


def _local_store(**extra: str) -> MemoryConfigStore:
    store = make_store(
        branch__master__remote="origin",
        remote__origin__url="user1@myhost:29418/teamA/proj.git",
    )
    for key, value in extra.items():
        store.values[key.replace("__", ".")] = [value]
    return store


class TestCLI:
    def setup_method(self):
        self.runner = CliRunner()
        self.global_store = make_store(
            gerrit__review__host="review.example.org",
            gerrit__review__user="alice",
            gerrit__review__port="29418",
        )
        self.local_store = _local_store(remote__origin__gerrit="review")
        self.service = Mock()

        self.resolver_patch = patch(
            "gerritcmd.cli._make_resolver", side_effect=self._resolver
        )
        self.service_patch = patch(
            "gerritcmd.cli.create_gerrit_service", return_value=self.service
        )
        self.git_patch = patch("gerritcmd.cli.git")
        self.resolver_patch.start()
        self.create_service = self.service_patch.start()
        self.git = self.git_patch.start()

    def teardown_method(self):
        patch.stopall()

    def _resolver(self, cwd=None):
        return EndpointResolver(self.global_store, local_store=self.local_store)

    def test_top_level_version(self):
        result = self.runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "gerritcmd version" in result.stdout

    # -- endpoint configuration --------------------------------------------

    def test_config_prompts_and_saves(self):
        result = self.runner.invoke(
            app, ["config", "staging"], input="staging.example.org\nbob\n2222\n"
        )
        assert result.exit_code == 0
        assert "Saved endpoint staging" in result.output
        assert self.global_store.get("gerrit.staging.host") == "staging.example.org"
        assert self.global_store.get("gerrit.staging.user") == "bob"
        assert self.global_store.get("gerrit.staging.port") == "2222"

    def test_config_overwrite_declined(self):
        result = self.runner.invoke(app, ["config", "review"], input="n\n")
        assert result.exit_code == 0
        assert self.global_store.writes == []

    def test_endpoints_table(self):
        result = self.runner.invoke(app, ["endpoints"])
        assert result.exit_code == 0
        assert "review" in result.output
        assert "29418" in result.output

    def test_endpoints_empty(self):
        self.global_store = MemoryConfigStore()
        result = self.runner.invoke(app, ["endpoints"])
        assert result.exit_code == 0
        assert "No Gerrit endpoints" in result.output

    def test_bind(self):
        self.local_store = _local_store()
        result = self.runner.invoke(app, ["bind", "review"])
        assert result.exit_code == 0
        assert self.local_store.get("remote.origin.gerrit") == "review"

    def test_bind_outside_repository(self):
        self.local_store = None
        result = self.runner.invoke(app, ["bind", "review"])
        assert result.exit_code == 2
        assert "Not inside a git repository" in result.output

    @patch("gerritcmd.cli.fetch_commit_msg_hook")
    def test_clone(self, mock_hook):
        self.local_store = MemoryConfigStore()
        result = self.runner.invoke(app, ["clone", "review", "tools/cli"])

        assert result.exit_code == 0
        self.git.clone.assert_called_once_with(
            "ssh://alice@review.example.org:29418/tools/cli", Path("cli")
        )
        assert self.local_store.get("remote.origin.gerrit") == "review"
        mock_hook.assert_called_once()

    @patch("gerritcmd.cli.fetch_commit_msg_hook")
    def test_clone_without_hook(self, mock_hook):
        self.local_store = MemoryConfigStore()
        result = self.runner.invoke(
            app, ["clone", "review", "tools/cli", "work", "--no-hook"]
        )
        assert result.exit_code == 0
        assert self.git.clone.call_args.args[1] == Path("work")
        mock_hook.assert_not_called()

    # -- server commands ----------------------------------------------------

    def test_projects_uses_bound_endpoint(self):
        self.service.get_projects.return_value = ["All-Projects", "teamA/proj"]
        result = self.runner.invoke(app, ["projects"])
        assert result.exit_code == 0
        assert "teamA/proj" in result.output
        descriptor = self.create_service.call_args.args[0]
        assert descriptor.host == "review.example.org"

    def test_projects_unbound(self):
        self.local_store = _local_store()
        result = self.runner.invoke(app, ["projects"])
        assert result.exit_code == 3
        assert "not bound" in result.output

    def test_projects_creates_missing_endpoint(self):
        self.service.get_projects.return_value = []
        result = self.runner.invoke(
            app, ["projects", "other"], input="y\nother.example.org\n\n\n"
        )
        assert result.exit_code == 0
        assert self.global_store.get("gerrit.other.host") == "other.example.org"
        assert self.global_store.get("gerrit.other.port") == "29418"

    def test_declined_creation_exits_cleanly(self):
        result = self.runner.invoke(app, ["projects", "other"], input="n\n")
        assert result.exit_code == 0
        assert "Error" not in result.output
        self.create_service.assert_not_called()

    def test_ssh_passthrough(self):
        result = self.runner.invoke(app, ["ssh", "-g", "review", "version"])
        assert result.exit_code == 0
        self.service.run_raw.assert_called_once_with(["version"])

    def test_ssh_failure_exit_code(self):
        self.service.get_projects.side_effect = SSHCommandError(
            "ssh failed", returncode=255, stderr="Connection refused"
        )
        result = self.runner.invoke(app, ["projects"])
        assert result.exit_code == 255
        assert "Connection refused" in result.output

    # -- change workflow ----------------------------------------------------

    def test_push_refspec(self):
        assert _push_refspec("master", False, None, []) == "HEAD:refs/for/master"
        assert (
            _push_refspec("dev", True, "t1", ["bob", "carol"])
            == "HEAD:refs/drafts/dev%topic=t1,r=bob,r=carol"
        )

    def test_push_remembers_reviewers(self):
        result = self.runner.invoke(app, ["push", "-r", "bob", "-r", "carol"])
        assert result.exit_code == 0
        self.git.push.assert_called_once_with(
            "origin", "HEAD:refs/for/master%r=bob,r=carol"
        )
        assert self.global_store.get_all("gerrit.reviewers") == ["bob", "carol"]

    def test_push_uses_branch_option(self):
        self.local_store = _local_store(branch__dev__remote="upstream")
        result = self.runner.invoke(app, ["--branch", "dev", "push"])
        assert result.exit_code == 0
        self.git.push.assert_called_once_with("upstream", "HEAD:refs/for/dev")

    def test_changes_json(self):
        self.service.get_open_changes.return_value = [
            ChangeInfo(number=7, subject="Fix it")
        ]
        result = self.runner.invoke(app, ["changes", "--format", "json"])
        assert result.exit_code == 0
        assert '"number":7' in result.output
        descriptor = self.create_service.call_args.args[0]
        assert descriptor.project == "teamA/proj"

    def test_changes_text(self):
        self.service.get_change_blocks.return_value = [
            {"change": "I1", "number": "7", "subject": "Fix it"}
        ]
        result = self.runner.invoke(app, ["changes", "--format", "text"])
        assert result.exit_code == 0
        assert "7  Fix it" in result.output
        self.service.get_open_changes.assert_not_called()

    def test_changes_unknown_format(self):
        result = self.runner.invoke(app, ["changes", "--format", "xml"])
        assert result.exit_code == 2
        self.create_service.assert_not_called()

    def test_changes_empty(self):
        self.service.get_open_changes.return_value = []
        self.service.project = "teamA/proj"
        result = self.runner.invoke(app, ["changes", "--all"])
        assert result.exit_code == 0
        assert "No changes" in result.output
        self.service.get_open_changes.assert_called_once_with(
            include_closed=True, owner=None
        )

    def test_changes_outside_repository(self):
        self.local_store = None
        result = self.runner.invoke(app, ["changes"])
        assert result.exit_code == 2
        assert "Not inside a git repository" in result.output

    def test_changes_with_local_path_remote(self):
        self.local_store = make_store(
            branch__master__remote="origin",
            remote__origin__url="/srv/git/tools.git",
        )
        result = self.runner.invoke(app, ["changes"])
        assert result.exit_code == 1
        assert "Error: No host in remote URL" in result.output
        assert not isinstance(result.exception, ValueError)
        self.create_service.assert_not_called()

    def test_repository_commands_use_binding(self):
        self.service.get_open_changes.return_value = []
        result = self.runner.invoke(app, ["changes", "--format", "json"])
        assert result.exit_code == 0
        descriptor = self.create_service.call_args.args[0]
        assert (descriptor.user, descriptor.host, descriptor.project) == (
            "alice",
            "review.example.org",
            "teamA/proj",
        )

    def test_repository_commands_without_binding_use_url(self):
        self.local_store = _local_store()
        self.service.get_open_changes.return_value = []
        result = self.runner.invoke(app, ["changes", "--format", "json"])
        assert result.exit_code == 0
        descriptor = self.create_service.call_args.args[0]
        assert (descriptor.user, descriptor.host) == ("user1", "myhost")

    def test_changes_without_remote_url(self):
        self.local_store = make_store(branch__master__remote="origin")
        result = self.runner.invoke(app, ["changes"])
        assert result.exit_code == 6

    def test_show(self):
        self.service.get_change_info.return_value = ChangeInfo(
            number=1234, subject="Fix it", project="teamA/proj"
        )
        result = self.runner.invoke(app, ["show", "1234"])
        assert result.exit_code == 0
        assert "Fix it" in result.output
        self.service.get_change_info.assert_called_once_with(1234)

    def test_show_patch_set(self):
        self.service.get_change_info.return_value = ChangeInfo.from_query_row(
            {
                "number": 1234,
                "currentPatchSet": {"number": 2, "ref": "refs/changes/34/1234/2"},
                "patchSets": [
                    {"number": 1, "revision": "abc1", "ref": "refs/changes/34/1234/1"},
                    {"number": 2, "revision": "def2", "ref": "refs/changes/34/1234/2"},
                ],
            }
        )
        result = self.runner.invoke(app, ["show", "1234,1"])
        assert result.exit_code == 0
        assert "refs/changes/34/1234/1" in result.output
        assert "Votes" not in result.output

    def test_show_unknown_patch_set(self):
        self.service.get_change_info.return_value = ChangeInfo(number=1234)
        result = self.runner.invoke(app, ["show", "1234,9"])
        assert result.exit_code == 1
        assert "Change 1234,9 not found" in result.output

    def test_checkout_current_patchset(self):
        self.service.get_current_patchset.return_value = 2
        result = self.runner.invoke(app, ["checkout", "1234"])
        assert result.exit_code == 0
        self.git.fetch.assert_called_once_with("origin", "refs/changes/34/1234/2")
        self.git.checkout_new_branch.assert_called_once_with("change/1234/2")

    def test_checkout_explicit_patchset(self):
        result = self.runner.invoke(app, ["checkout", "1234,1"])
        assert result.exit_code == 0
        self.service.get_current_patchset.assert_not_called()
        self.git.fetch.assert_called_once_with("origin", "refs/changes/34/1234/1")

    def test_checkout_invalid_spec(self):
        result = self.runner.invoke(app, ["checkout", "abc"])
        assert result.exit_code == 1
        self.git.fetch.assert_not_called()

    def test_review_vote(self):
        result = self.runner.invoke(app, ["review", "1234,3", "-c", "2", "-m", "ok"])
        assert result.exit_code == 0
        self.service.review.assert_called_once_with(
            1234,
            3,
            code_review=2,
            verified=None,
            message="ok",
            submit=False,
            abandon=False,
            restore=False,
        )

    def test_review_vote_out_of_range(self):
        result = self.runner.invoke(app, ["review", "1234,3", "-c", "3"])
        assert result.exit_code == 2
        self.service.review.assert_not_called()

    def test_review_nothing_to_do(self):
        self.service.review.side_effect = ValueError("Nothing to do")
        result = self.runner.invoke(app, ["review", "1234,3"])
        assert result.exit_code == 2

    def test_assign(self):
        result = self.runner.invoke(app, ["assign", "1234", "bob", "carol"])
        assert result.exit_code == 0
        self.service.add_reviewers.assert_called_once_with(1234, ["bob", "carol"])
        assert self.global_store.get_all("gerrit.reviewers") == ["bob", "carol"]

    def test_reviewers(self):
        self.global_store.add("gerrit.reviewers", "bob")
        result = self.runner.invoke(app, ["reviewers"])
        assert result.exit_code == 0
        assert "bob" in result.output

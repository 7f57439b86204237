"""Tests for the plan and apply output parsers."""

from tfnotify_core.errors import ParseError
from tfnotify_core.terraform.parser import (
    ApplyParser,
    MovedResource,
    PlanParser,
    _trim_bars,
    _trim_last_newline,
    classify_line,
)

PLAN_SUCCESS = """
Refreshing Terraform state in-memory prior to plan...
google_project.my_project: Refreshing state...

------------------------------------------------------------------------

An execution plan has been generated and is shown below.
Resource actions are indicated with the following symbols:
  + create

Terraform will perform the following actions:

  # google_compute_global_address.my_another_project will be created
  + google_compute_global_address.my_another_project
      id:         <computed>
      ip_version: "IPV4"


Plan: 1 to add, 0 to change, 0 to destroy.

------------------------------------------------------------------------

Note: You didn't specify an "-out" parameter to save this plan, so Terraform
can't guarantee that exactly these actions will be performed if
"terraform apply" is subsequently run.
"""

PLAN_OUTPUT_CHANGES_0_12 = """
------------------------------------------------------------------------

Terraform will perform the following actions:

Plan: 0 to add, 0 to change, 0 to destroy.

Changes to Outputs:
  + aws_instance_name = "my-instance"

------------------------------------------------------------------------
"""

PLAN_OUTPUT_CHANGES_0_15 = """
null_resource.this: Refreshing state... [id=6068603774747257119]

Changes to Outputs:
  + test = 42

You can apply this plan to save these new output values to the Terraform
state, without changing any real infrastructure.

─────────────────────────────────────────────────────────────────────────────

Note: You didn't use the -out option to save this plan, so Terraform can't
guarantee to take exactly these actions if you run "terraform apply" now.
"""

PLAN_OUTPUT_CHANGES_IN_AUTOMATION = """
null_resource.this: Refreshing state... [id=6068603774747257119]

Changes to Outputs:
  + test = 42

You can apply this plan to save these new output values to the Terraform
state, without changing any real infrastructure.
"""

PLAN_FAILURE = """
xxxxxxxxx
xxxxxxxxx

Error: Error refreshing state: 4 error(s) occurred:

* google_sql_database.main: 1 error(s) occurred:

* google_sql_user.proxyuser_main: 1 error(s) occurred:
"""

PLAN_FAILURE_WITH_BARS = """
Plan: 1 to add, 0 to change, 0 to destroy.
╷
│ Error: Invalid reference
│
│   on main.tf line 3:
╵
"""

PLAN_NO_CHANGES = """
google_bigquery_dataset.tfnotify_echo: Refreshing state...

------------------------------------------------------------------------

No changes. Infrastructure is up-to-date.

This means that Terraform did not detect any differences between your
configuration and real physical resources that exist.
"""

PLAN_HAS_DESTROY = """
------------------------------------------------------------------------

Terraform will perform the following actions:

  # google_project_iam_member.team_platform[2] will be destroyed
  - google_project_iam_member.team_platform[2]


Plan: 0 to add, 0 to change, 1 to destroy.

------------------------------------------------------------------------
"""

PLAN_ZERO_DESTROY = """
Terraform will perform the following actions:

  # null_resource.zoo will be created
  + resource "null_resource" "zoo" {}

Plan: 1 to add, 0 to change, 0 to destroy.
"""

PLAN_IMPORTED_MOVED = """
null_resource.bar: Refreshing state... [id=7822522400686116714]

Terraform will perform the following actions:

  # github_issue.test-2 must be replaced
  # (moved from github_issue.test)
-/+ resource "github_issue" "test-2" {
      ~ repository       = "tfaction" -> "tfnotify" # forces replacement
    }

  # github_repository.tfaction-2 will be updated in-place
  # (moved from github_repository.tfaction)
  ~ resource "github_repository" "tfaction-2" {
      ~ name                        = "tfaction" -> "action"
    }

  # github_repository.tfnotify will be updated in-place
  # (imported from "tfnotify")
  ~ resource "github_repository" "tfnotify" {
        name                        = "tfnotify"
    }

  # null_resource.foo has moved to null_resource.bar
    resource "null_resource" "bar" {
        id = "7822522400686116714"
    }

  # null_resource.zoo will be created
  + resource "null_resource" "zoo" {
      + id = (known after apply)
    }

  # aws_instance.old will be destroyed
  - resource "aws_instance" "old" {}

Plan: 1 to import, 2 to add, 2 to change, 1 to destroy.

─────────────────────────────────────────────────────────────────────────────

Note: You didn't use the -out option to save this plan.
"""

PLAN_OUTSIDE_CHANGES = """
Note: Objects have changed outside of Terraform

Terraform detected the following changes made outside of Terraform since the
last "terraform apply":

  # null_resource.foo has been deleted
  - resource "null_resource" "foo" {
      - id = "123" -> null
    }

Unless you have made equivalent changes to your configuration, or ignored the
relevant attributes using ignore_changes, the following plan may include
actions to undo or respond to these changes.

─────────────────────────────────────────────────────────────────────────────

Terraform will perform the following actions:

  # null_resource.foo will be created
  + resource "null_resource" "foo" {
      + id = (known after apply)
    }

Plan: 1 to add, 0 to change, 0 to destroy.
"""

PLAN_WITH_WARNING = """
OpenTofu will perform the following actions:

  # aws_s3_bucket.example will be updated in-place
  ~ resource "aws_s3_bucket" "example" {}

Plan: 0 to add, 1 to change, 0 to destroy.
╷
│ Warning: Argument is deprecated
│
│ Use the aws_s3_bucket_acl resource instead
╵

─────────────────────────────────────────────────────────────────────────────

Note: You didn't use the -out option to save this plan.
"""

APPLY_SUCCESS = """
google_project.my_service: Refreshing state...
google_storage_bucket.chartmuseum: Refreshing state...

Apply complete! Resources: 0 added, 0 changed, 0 destroyed.
"""

APPLY_FAILURE = """
google_project.tfnotify_jp_tfnotify_prod: Refreshing state...


Error: Batch "project/tfnotify-jp-tfnotify-prod/services:batchEnable" returned error: googleapi: Error 403: The caller does not have permission, forbidden

  on .terraform/modules/tfnotify-jp-tfnotify-prod/google_project_service.tf line 6, in resource "google_project_service" "gcp_api_service":
   6: resource "google_project_service" "gcp_api_service" {


"""

APPLY_FAILURE_WITH_BARS = """
aws_instance.web: Creating...
╷
│ Error: creating EC2 Instance: UnauthorizedOperation
│
│   with aws_instance.web,
╵
"""


# ---------------------------------------------------------------------------
# PlanParser
# ---------------------------------------------------------------------------


class TestPlanParserOutcome:
    def test_add_only(self):
        result = PlanParser().parse(PLAN_SUCCESS)
        assert result.result == "Plan: 1 to add, 0 to change, 0 to destroy."
        assert result.has_add_or_update_only is True
        assert result.has_destroy is False
        assert result.has_no_changes is False
        assert result.has_error is False
        assert result.has_parse_error is False
        assert result.error is None
        assert result.created == ["google_compute_global_address.my_another_project"]

    def test_changed_result_runs_from_actions_banner_to_rule(self):
        result = PlanParser().parse(PLAN_SUCCESS)
        assert result.changed_result == (
            "# google_compute_global_address.my_another_project will be created\n"
            "  + google_compute_global_address.my_another_project\n"
            "      id:         <computed>\n"
            '      ip_version: "IPV4"\n'
            "\n"
            "\n"
            "Plan: 1 to add, 0 to change, 0 to destroy."
        )

    def test_no_changes(self):
        result = PlanParser().parse(PLAN_NO_CHANGES)
        assert result.result == "No changes. Infrastructure is up-to-date."
        assert result.has_no_changes is True
        assert result.has_add_or_update_only is False
        assert result.changed_result == ""
        assert result.created == []
        assert result.updated == []
        assert result.deleted == []
        assert result.replaced == []
        assert result.imported == []
        assert result.moved == []

    def test_has_destroy(self):
        result = PlanParser().parse(PLAN_HAS_DESTROY)
        assert result.result == "Plan: 0 to add, 0 to change, 1 to destroy."
        assert result.has_destroy is True
        assert result.has_add_or_update_only is False
        assert result.deleted == ["google_project_iam_member.team_platform[2]"]

    def test_zero_to_destroy_is_not_a_destroy(self):
        result = PlanParser().parse(PLAN_ZERO_DESTROY)
        assert result.has_destroy is False
        assert result.has_add_or_update_only is True

    def test_explicit_zero_plan_is_no_changes(self):
        result = PlanParser().parse(PLAN_OUTPUT_CHANGES_0_12)
        assert result.result == "Plan: 0 to add, 0 to change, 0 to destroy."
        assert result.has_no_changes is True
        assert result.has_add_or_update_only is False
        assert result.changed_result == (
            "Plan: 0 to add, 0 to change, 0 to destroy.\n"
            "\n"
            "Changes to Outputs:\n"
            '  + aws_instance_name = "my-instance"'
        )

    def test_output_only_changes(self):
        result = PlanParser().parse(PLAN_OUTPUT_CHANGES_0_15)
        assert result.result == "Only Outputs will be changed."
        assert result.has_add_or_update_only is True
        assert result.changed_result == (
            "Changes to Outputs:\n"
            "  + test = 42\n"
            "\n"
            "You can apply this plan to save these new output values to the Terraform\n"
            "state, without changing any real infrastructure."
        )

    def test_output_only_changes_without_closing_rule(self):
        result = PlanParser().parse(PLAN_OUTPUT_CHANGES_IN_AUTOMATION)
        assert result.result == "Only Outputs will be changed."
        assert result.changed_result.startswith("Changes to Outputs:")
        assert result.changed_result.endswith("without changing any real infrastructure.")


class TestPlanParserErrors:
    def test_error_block_is_result(self):
        result = PlanParser().parse(PLAN_FAILURE)
        assert result.has_error is True
        assert result.has_add_or_update_only is False
        assert result.error is None
        assert result.result == (
            "Error: Error refreshing state: 4 error(s) occurred:\n"
            "\n"
            "* google_sql_database.main: 1 error(s) occurred:\n"
            "\n"
            "* google_sql_user.proxyuser_main: 1 error(s) occurred:"
        )

    def test_single_error_line(self):
        result = PlanParser().parse("Error: something broke\n")
        assert result.has_error is True
        assert result.result.startswith("Error: something broke")

    def test_error_outranks_earlier_pass_line(self):
        result = PlanParser().parse(PLAN_FAILURE_WITH_BARS)
        assert result.has_error is True
        assert result.has_add_or_update_only is False
        assert result.result == "Error: Invalid reference\n\n   on main.tf line 3:"

    def test_empty_body_is_parse_error(self):
        result = PlanParser().parse("")
        assert result.has_parse_error is True
        assert isinstance(result.error, ParseError)
        assert str(result.error) == "cannot parse plan result"
        assert result.result == ""
        assert result.has_add_or_update_only is False

    def test_unrecognised_body_is_parse_error(self):
        result = PlanParser().parse("Initializing the backend...\nsegmentation fault\n")
        assert result.has_parse_error is True
        assert result.has_error is False


class TestPlanParserSpans:
    def test_outside_changes(self):
        result = PlanParser().parse(PLAN_OUTSIDE_CHANGES)
        assert result.outside_tool_changes.startswith("Terraform detected the following changes")
        assert result.outside_tool_changes.endswith(
            "Unless you have made equivalent changes to your configuration, or ignored the"
        )
        assert "null_resource.foo has been deleted" in result.outside_tool_changes
        assert result.changed_result.startswith("# null_resource.foo will be created")
        assert result.created == ["null_resource.foo"]

    def test_warning_is_extracted_without_bars(self):
        result = PlanParser().parse(PLAN_WITH_WARNING)
        assert result.warning == (
            "Warning: Argument is deprecated\n\n Use the aws_s3_bucket_acl resource instead"
        )
        assert result.updated == ["aws_s3_bucket.example"]
        assert result.has_add_or_update_only is True

    def test_no_warning(self):
        assert PlanParser().parse(PLAN_SUCCESS).warning == ""


class TestPlanParserResources:
    def test_imported_and_moved_resources(self):
        result = PlanParser().parse(PLAN_IMPORTED_MOVED)
        assert result.result == "Plan: 1 to import, 2 to add, 2 to change, 1 to destroy."
        assert result.has_destroy is True
        assert result.created == ["null_resource.zoo"]
        assert result.updated == ["github_repository.tfaction-2", "github_repository.tfnotify"]
        assert result.deleted == ["aws_instance.old"]
        assert result.replaced == ["github_issue.test-2"]
        assert result.imported == ["github_repository.tfnotify"]
        assert result.moved == [
            MovedResource(before="github_issue.test", after="github_issue.test-2"),
            MovedResource(before="github_repository.tfaction", after="github_repository.tfaction-2"),
            MovedResource(before="null_resource.foo", after="null_resource.bar"),
        ]

    def test_changed_result_stops_before_rule(self):
        result = PlanParser().parse(PLAN_IMPORTED_MOVED)
        assert result.changed_result.startswith("# github_issue.test-2 must be replaced")
        assert result.changed_result.endswith("Plan: 1 to import, 2 to add, 2 to change, 1 to destroy.")


class TestClassifyLine:
    def test_created(self):
        assert classify_line("  # aws_instance.web will be created") == ("created", "aws_instance.web")

    def test_tainted_replace(self):
        assert classify_line("  # aws_instance.web is tainted, so must be replaced") == (
            "replaced",
            "aws_instance.web",
        )

    def test_replace_as_requested(self):
        assert classify_line("  # aws_instance.web will be replaced, as requested") == (
            "replaced",
            "aws_instance.web",
        )

    def test_standalone_import(self):
        assert classify_line("  # aws_instance.web will be imported") == ("imported", "aws_instance.web")

    def test_annotation_on_first_line_is_ignored(self):
        assert classify_line("  # (moved from aws_instance.old)", None) is None

    def test_annotation_after_unrelated_line_is_ignored(self):
        assert classify_line("  # (imported from \"i-123\")", "  # aws_instance.web will be created") is None

    def test_plain_line(self):
        assert classify_line('  + resource "null_resource" "zoo" {') is None


# ---------------------------------------------------------------------------
# ApplyParser
# ---------------------------------------------------------------------------


class TestApplyParser:
    def test_success(self):
        result = ApplyParser().parse(APPLY_SUCCESS)
        assert result.result == "Apply complete! Resources: 0 added, 0 changed, 0 destroyed."
        assert result.has_error is False
        assert result.has_parse_error is False

    def test_failure(self):
        result = ApplyParser().parse(APPLY_FAILURE)
        assert result.has_error is True
        assert result.result == (
            'Error: Batch "project/tfnotify-jp-tfnotify-prod/services:batchEnable" returned error: '
            "googleapi: Error 403: The caller does not have permission, forbidden\n"
            "\n"
            "  on .terraform/modules/tfnotify-jp-tfnotify-prod/google_project_service.tf line 6, "
            'in resource "google_project_service" "gcp_api_service":\n'
            '   6: resource "google_project_service" "gcp_api_service" {'
        )

    def test_failure_with_bars(self):
        result = ApplyParser().parse(APPLY_FAILURE_WITH_BARS)
        assert result.has_error is True
        assert result.result == (
            "Error: creating EC2 Instance: UnauthorizedOperation\n\n   with aws_instance.web,"
        )

    def test_empty_body_is_parse_error(self):
        result = ApplyParser().parse("")
        assert result.has_parse_error is True
        assert str(result.error) == "cannot parse apply result"
        assert result.result == ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestTrimLastNewline:
    def test_empty(self):
        assert _trim_last_newline([]) == []

    def test_trailing_blank(self):
        assert _trim_last_newline(["a", "b", "c", ""]) == ["a", "b", "c"]

    def test_only_blank(self):
        assert _trim_last_newline([""]) == []

    def test_no_trailing_blank(self):
        assert _trim_last_newline(["a"]) == ["a"]


class TestTrimBars:
    def test_each_bar_style_removed_once(self):
        assert _trim_bars(["| a", "│ b", "╵", "plain"]) == [" a", " b", "", "plain"]

    def test_only_one_of_each_style(self):
        assert _trim_bars(["||x"]) == ["|x"]

"""
Corrective-Action Text Tests

Tests the one-line comments written for out-of-tolerance readings, the
incremental update after a cell edit, full regeneration, and the numbered
display form of the comment box.

Example usage:
    pytest tests/test_corrective.py -v
"""

import logging

import pytest

from paperform.corrective import (
    add_comment,
    comment_prefix,
    format_numbered,
    generate_corrective_actions,
    missing_reference_comment,
    remove_comments,
    strip_numbering,
    time_comment,
    time_comment_prefix,
    update_for_cell_change,
    violation_comment,
)
from paperform.models import FormType, Stage
from paperform.rules import get_stage_rule
from tests.helpers import make_form, make_row

SAMPLE_CCP1 = "Row 2 CCP1 162°F — below 166°F"
SAMPLE_WINDOW = "Row 2 Time 80°F Cooling 110min — >105min"


class TestCommentLines:
    """Test the individual comment builders."""

    def test_below_minimum(self):
        comment = violation_comment(1, Stage.CCP1, 162.0, "Temperature 162°F is below minimum required 166°F")
        assert comment == SAMPLE_CCP1

    def test_above_maximum(self):
        comment = violation_comment(0, Stage.FINAL_CHILL, 45.0, "Temperature 45°F is above maximum allowed 39°F")
        assert comment == "Row 1 Final Chill 45°F — above 39°F"

    def test_unrecognized_message_kept(self):
        comment = violation_comment(0, Stage.CCP2, 120.0, "Checked by QA")
        assert comment == "Row 1 CCP2 120°F — Checked by QA"

    def test_time_comment_minutes(self):
        rule = get_stage_rule(Stage.COOLING_TO_80)
        assert time_comment(1, Stage.COOLING_TO_80, 110, rule) == SAMPLE_WINDOW

    def test_time_comment_hours(self):
        rule = get_stage_rule(Stage.COOLING_TO_54)
        assert time_comment(0, Stage.COOLING_TO_54, 290, rule) == "Row 1 Time 54°F Cooling 4.83h — >4.75h"

    def test_missing_reference(self):
        assert missing_reference_comment(2, Stage.COOLING_TO_80) == "Row 3 Time 80°F Cooling set — missing CCP2 time"
        assert missing_reference_comment(2, Stage.COOLING_TO_54) == (
            "Row 3 Time 54°F Cooling set — missing 80°F Cooling or CCP2 time"
        )

    def test_prefixes_do_not_collide(self):
        """Test that row 1 prefixes never match row 10 lines."""
        assert not "Row 10 CCP1 150°F — below 166°F".startswith(comment_prefix(0, Stage.CCP1))
        assert not time_comment_prefix(0, Stage.COOLING_TO_80).startswith(comment_prefix(0, Stage.COOLING_TO_80))


class TestCommentText:
    """Test line-level editing of the comment box."""

    def test_add_comment_appends(self):
        assert add_comment("", "a") == "a"
        assert add_comment("a", "b") == "a\nb"

    def test_add_comment_deduplicates(self):
        assert add_comment("a\nb", "b") == "a\nb"

    def test_remove_comments_by_prefix(self):
        text = "Row 1 CCP1 160°F — below 166°F\nManual note\nRow 10 CCP1 150°F — below 166°F"
        assert remove_comments(text, comment_prefix(0, Stage.CCP1)) == (
            "Manual note\nRow 10 CCP1 150°F — below 166°F"
        )

    def test_format_numbered(self):
        assert format_numbered("first\n\n  second  ") == "1. first\n2. second"
        assert format_numbered("") == ""
        assert format_numbered(None) == ""

    def test_strip_numbering(self):
        assert strip_numbering("1. first\n2. second") == "first\nsecond"
        assert strip_numbering("1.first\n\n 12.  twelfth") == "first\ntwelfth"
        assert strip_numbering(None) == ""


class TestGenerateCorrectiveActions:
    """Test full regeneration of the automatic lines."""

    def test_sample_form(self, sample_form):
        assert generate_corrective_actions(sample_form) == f"{SAMPLE_CCP1}\n{SAMPLE_WINDOW}"

    def test_compliant_form_has_no_text(self, compliant_row, empty_form):
        assert generate_corrective_actions(make_form(compliant_row)) == ""
        assert generate_corrective_actions(empty_form) == ""

    def test_manual_lines_kept_first(self, sample_form):
        form = sample_form.model_copy(update={
            "corrective_actions_comments": "Row 2 CCP1 150°F — below 166°F\nRack 2 re-heated to 172°F\n"
        })

        text = generate_corrective_actions(form)

        assert text.split("\n") == ["Rack 2 re-heated to 172°F", SAMPLE_CCP1, SAMPLE_WINDOW]

    def test_missing_reference_line(self):
        form = make_form(make_row(type="Beef", coolingTo80=("75", "12:00")))

        assert generate_corrective_actions(form) == "Row 1 Time 80°F Cooling set — missing CCP2 time"

    def test_final_chill_per_form_type(self):
        row = make_row(type="Empanada", finalChill=("40",))

        assert generate_corrective_actions(make_form(row)) == "Row 1 Final Chill 40°F — above 39°F"
        assert generate_corrective_actions(
            make_form(row, form_type=FormType.PIROSHKI_CALZONE_EMPANADA)
        ) == ""


class TestUpdateForCellChange:
    """Test incremental updates after one edit."""

    @pytest.fixture
    def sample_text(self, sample_form):
        return generate_corrective_actions(sample_form)

    def test_temperature_fixed(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 1, "ccp1.temp", "170")
        assert text == SAMPLE_WINDOW

    def test_temperature_changed(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 1, "ccp1.temp", "150")
        assert text == f"{SAMPLE_WINDOW}\nRow 2 CCP1 150°F — below 166°F"

    def test_new_violation_on_clean_row(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 0, "finalChill.temp", "41")
        assert text.split("\n")[-1] == "Row 1 Final Chill 41°F — above 39°F"

    def test_time_fixed(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 1, "coolingTo80.time", "13:00")
        assert text == SAMPLE_CCP1

    def test_reference_time_change_rechecks_windows(self, sample_form, sample_text):
        """Test that moving the CCP2 time re-evaluates the 80°F window."""
        text = update_for_cell_change(sample_text, sample_form, 1, "ccp2.time", "11:30")
        assert text == SAMPLE_CCP1

    def test_reference_time_cleared(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 1, "ccp2.time", "")
        assert text == f"{SAMPLE_CCP1}\nRow 2 Time 80°F Cooling set — missing CCP2 time"

    def test_none_value_clears_cell(self, sample_form, sample_text):
        text = update_for_cell_change(sample_text, sample_form, 1, "ccp1.temp", None)
        assert text == SAMPLE_WINDOW

    def test_manual_lines_untouched(self, sample_form):
        text = update_for_cell_change("Checked by QA", sample_form, 1, "ccp1.temp", "150")
        assert text == "Checked by QA\nRow 2 CCP1 150°F — below 166°F"

    @pytest.mark.parametrize("field", ["ccp1.initial", "ccp1", "bogus.temp", "ccp1.temp.extra"])
    def test_ignored_fields(self, sample_form, sample_text, field):
        assert update_for_cell_change(sample_text, sample_form, 1, field, "100") == sample_text

    def test_missing_row(self, sample_form, sample_text, caplog):
        with caplog.at_level(logging.WARNING, logger="paperform.corrective"):
            text = update_for_cell_change(sample_text, sample_form, 9, "ccp1.temp", "100")

        assert text == sample_text
        assert "missing row 9" in caplog.text

    def test_time_on_row_without_data(self):
        form = make_form(make_row(rack="1st Rack"))

        text = update_for_cell_change("", form, 0, "coolingTo80.time", "13:00")

        edited = make_form(form.entries[0].with_cell(Stage.COOLING_TO_80, time="13:00"))
        assert text == ""
        assert text == generate_corrective_actions(edited)

    def test_type_fills_row_adds_pending_lines(self):
        form = make_form(make_row(rack="1st Rack", coolingTo80=("", "13:00")))

        text = update_for_cell_change("Checked by QA", form, 0, "type", "Beef")

        assert text == "Checked by QA\nRow 1 Time 80°F Cooling set — missing CCP2 time"

    def test_clearing_last_temperature_drops_row_lines(self):
        form = make_form(make_row(ccp1=("150",), coolingTo80=("", "13:00")))
        text = generate_corrective_actions(form)
        assert text == "Row 1 CCP1 150°F — below 166°F\nRow 1 Time 80°F Cooling set — missing CCP2 time"

        assert update_for_cell_change(text, form, 0, "ccp1.temp", "") == ""

    @pytest.mark.parametrize("field,value", [
        ("ccp1.temp", "170"),
        ("ccp1.temp", "150"),
        ("ccp2.time", ""),
        ("ccp2.time", "11:30"),
        ("coolingTo80.time", "14:30"),
        ("finalChill.temp", "45"),
    ])
    def test_matches_full_rebuild(self, sample_form, sample_text, field, value):
        """Test that one edit gives the same lines as recomputing the edited form."""
        stage, part = field.split(".")
        rows = list(sample_form.entries)
        rows[1] = rows[1].with_cell(Stage(stage), **{part: value})
        edited = sample_form.model_copy(update={"entries": rows})

        text = update_for_cell_change(sample_text, sample_form, 1, field, value)

        assert sorted(text.split("\n")) == sorted(generate_corrective_actions(edited).split("\n"))

    def test_form_not_mutated(self, sample_form, sample_text):
        update_for_cell_change(sample_text, sample_form, 1, "ccp1.temp", "170")
        assert sample_form.entries[1].ccp1.temp == "162"

from datepoll.tally import NO_OPTIONS, NO_RESPONSES, READY, sort_dates, tally_availability


def _p(name, dates, pid=None, comment=None):
    return {"id": pid or name, "participant_name": name, "selected_dates": dates, "comment": comment}


class TestSortDates:
    def test_sorts_by_calendar_value(self):
        assert sort_dates(["2026-03-10", "2026-02-28", "2026-03-02"]) == [
            "2026-02-28",
            "2026-03-02",
            "2026-03-10",
        ]

    def test_unparseable_values_sort_last(self):
        assert sort_dates(["soon", "2026-01-01"]) == ["2026-01-01", "soon"]


class TestTallyAvailability:
    def test_no_options(self):
        tally = tally_availability([], [_p("Ana", ["2026-03-02"])])
        assert tally.status == NO_OPTIONS
        assert tally.sorted_dates == []
        assert tally.vote_counts == {}
        assert tally.max_votes == 0
        assert tally.best_dates == []

    def test_no_responses_still_lists_sorted_options(self):
        tally = tally_availability(["2026-03-04", "2026-03-02"], [])
        assert tally.status == NO_RESPONSES
        assert tally.sorted_dates == ["2026-03-02", "2026-03-04"]
        assert tally.vote_counts == {"2026-03-02": 0, "2026-03-04": 0}
        assert tally.max_votes == 0
        assert tally.best_dates == []
        assert tally.response_count == 0

    def test_counts_and_single_winner(self):
        tally = tally_availability(
            ["2026-03-03", "2026-03-02", "2026-03-04"],
            [
                _p("Ana", ["2026-03-02", "2026-03-03"]),
                _p("Ben", ["2026-03-03"]),
                _p("Cy", ["2026-03-03", "2026-03-04"]),
            ],
        )
        assert tally.status == READY
        assert tally.vote_counts == {"2026-03-02": 1, "2026-03-03": 3, "2026-03-04": 1}
        assert tally.max_votes == 3
        assert tally.best_dates == ["2026-03-03"]
        assert tally.is_best("2026-03-03")
        assert not tally.is_best("2026-03-02")

    def test_ties_return_every_top_date_in_order(self):
        tally = tally_availability(
            ["2026-03-04", "2026-03-02", "2026-03-03"],
            [_p("Ana", ["2026-03-04", "2026-03-02"]), _p("Ben", ["2026-03-02", "2026-03-04"])],
        )
        assert tally.max_votes == 2
        assert tally.best_dates == ["2026-03-02", "2026-03-04"]

    def test_dates_outside_options_are_ignored(self):
        tally = tally_availability(
            ["2026-03-02"],
            [_p("Ana", ["2026-03-02", "2025-12-31"])],
        )
        assert tally.vote_counts == {"2026-03-02": 1}
        assert "2025-12-31" not in tally.vote_counts

    def test_all_zero_has_no_winner(self):
        tally = tally_availability(["2026-03-02"], [_p("Ana", ["2026-04-01"]), _p("Ben", [])])
        assert tally.status == READY
        assert tally.max_votes == 0
        assert tally.best_dates == []
        assert not tally.is_best("2026-03-02")

    def test_duplicate_selection_counts_once(self):
        tally = tally_availability(["2026-03-02"], [_p("Ana", ["2026-03-02", "2026-03-02"])])
        assert tally.vote_counts["2026-03-02"] == 1

    def test_rows_follow_participations_and_sorted_columns(self):
        tally = tally_availability(
            ["2026-03-03", "2026-03-02"],
            [
                _p("Ben", ["2026-03-03"], pid="p2", comment="late"),
                _p("Ana", ["2026-03-02"], pid="p1"),
            ],
        )
        assert [r.participant_name for r in tally.rows] == ["Ben", "Ana"]
        assert tally.rows[0].selections == (False, True)
        assert tally.rows[0].comment == "late"
        assert tally.rows[1].participation_id == "p1"
        assert tally.rows[1].selections == (True, False)

    def test_missing_selected_dates_treated_as_empty(self):
        tally = tally_availability(["2026-03-02"], [{"id": "p1", "participant_name": "Ana", "selected_dates": None}])
        assert tally.vote_counts == {"2026-03-02": 0}
        assert tally.rows[0].selections == (False,)

    def test_same_input_same_output(self):
        options = ["2026-03-03", "2026-03-02"]
        participations = [_p("Ana", ["2026-03-02"]), _p("Ben", ["2026-03-02", "2026-03-03"])]
        assert tally_availability(options, participations) == tally_availability(options, participations)

    def test_inputs_not_mutated(self):
        options = ["2026-03-03", "2026-03-02"]
        participations = [_p("Ana", ["2026-03-03", "2026-03-02"])]
        tally_availability(options, participations)
        assert options == ["2026-03-03", "2026-03-02"]
        assert participations[0]["selected_dates"] == ["2026-03-03", "2026-03-02"]

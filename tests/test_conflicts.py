# =============================================================================
# tests/test_conflicts.py
# Unit Tests for conflict classification
# =============================================================================

from conflicts import HIGH_RISK, PACU, SPECIAL_RESOURCE, classify_case, conflict_icons, flag_summary


class TestConflictIcons:

    def test_no_conflicts(self):
        assert conflict_icons([]) == []
        assert conflict_icons(None) == []

    def test_case_insensitive_pacu(self):
        assert conflict_icons(['Pacu beds full']) == [{'category': PACU, 'source_text': 'Pacu beds full'}]

    def test_special_resource_keywords(self):
        for note in ['Special tray', 'Intra-op MRI', 'Perfusionist needed', 'X-ray tech', 'Equipment check']:
            assert [i['category'] for i in conflict_icons([note])] == [SPECIAL_RESOURCE]

    def test_first_match_per_category_wins(self):
        icons = conflict_icons(['MRI at 10', 'PACU tight', 'Robot equipment', 'PACU overflow'])
        assert icons == [
            {'category': PACU, 'source_text': 'PACU tight'},
            {'category': SPECIAL_RESOURCE, 'source_text': 'MRI at 10'},
        ]

    def test_one_note_can_raise_both(self):
        icons = conflict_icons(['PACU needs special monitoring'])
        assert [i['category'] for i in icons] == [PACU, SPECIAL_RESOURCE]

    def test_unrelated_notes_ignored(self):
        assert conflict_icons(['Surgeon late', 'Consent pending']) == []


class TestClassifyCase:

    def test_high_risk_flag_without_pacu(self, make_case):
        case = make_case(risk='High', conflicts=['Equipment tray'])
        categories = [i['category'] for i in classify_case(case)]
        assert categories == [SPECIAL_RESOURCE, HIGH_RISK]

    def test_high_risk_suppressed_by_pacu(self, make_case):
        case = make_case(risk='High', conflicts=['PACU tight'])
        assert [i['category'] for i in classify_case(case)] == [PACU]

    def test_no_duplicate_categories(self, make_case):
        case = make_case(risk='High', conflicts=['tech', 'special', 'pacu', 'PACU', 'mri'])
        categories = [i['category'] for i in classify_case(case)]
        assert len(categories) == len(set(categories))

    def test_flag_summary(self, make_case):
        case = make_case(risk='High', conflicts=['PACU bed'])
        assert flag_summary(case) == {'pacu': True, 'special_resource': False, 'high_risk': False}

    def test_flag_summary_matches_icons(self, make_case):
        case = make_case(risk='High', conflicts=['Requires special tray'])
        assert flag_summary(case) == {'pacu': False, 'special_resource': True, 'high_risk': True}

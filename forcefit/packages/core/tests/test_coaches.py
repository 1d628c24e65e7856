"""教练人设注册表测试"""

from forcefit.core.coaches import COACH_PERSONAS, get_coach, list_coach_ids


class TestCoachRegistry:
    def test_four_builtin_coaches(self):
        assert list_coach_ids() == [
            "elite-performance",
            "wellness-guru",
            "science-based",
            "motivational-champion",
        ]

    def test_ids_unique(self):
        ids = [p.id for p in COACH_PERSONAS]
        assert len(ids) == len(set(ids))

    def test_lookup_by_id(self):
        coach = get_coach("wellness-guru")
        assert coach is not None
        assert coach.name == "Dr. Serena Mindful"
        assert coach.short_name == "Serena"
        assert "Stress Reduction" in coach.expertise

    def test_unknown_coach(self):
        assert get_coach("yoga-master") is None

    def test_every_coach_has_style(self):
        for persona in COACH_PERSONAS:
            assert persona.communication_style
            assert len(persona.expertise) == 6

"""Tests for heuristic content DNA analysis."""

from datetime import date

from streamsense.models.content import MediaType
from streamsense.services.dna.analyzer import analyze_content, dna_from_details, normalize_vector

TODAY = date(2026, 10, 1)


class TestNormalizeVector:
    """Tests for normalize_vector."""

    def test_scales_max_to_one(self):
        assert normalize_vector({"a": 2.0, "b": 1.0, "c": 0.0}) == {"a": 1.0, "b": 0.5, "c": 0.0}

    def test_zero_vector_stays_zero(self):
        assert normalize_vector({"a": 0.0, "b": 0.0}) == {"a": 0.0, "b": 0.0}


class TestAnalyzeContent:
    """Tests for analyze_content."""

    def test_horror_thriller(self):
        dna = analyze_content(1, MediaType.MOVIE, [27, 53], today=TODAY)

        assert dna.tone["dark"] == 1.0
        assert dna.tone["suspenseful"] == 1.0
        assert dna.tone["humorous"] == 0.0
        assert dna.themes["survival"] == 1.0
        assert dna.setting["contemporary"] == 1.0
        assert dna.pacing == {"slow": 0.0, "medium": 0.0, "fast": 1.0}
        assert dna.complexity["complex"] == 1.0
        assert dna.genres == [27, 53]

    def test_every_dimension_has_all_keys(self):
        dna = analyze_content(1, "tv", [], today=TODAY)

        assert set(dna.tone) == {"dark", "humorous", "serious", "lighthearted", "suspenseful", "emotional"}
        assert len(dna.themes) == 16
        assert set(dna.pacing) == {"slow", "medium", "fast"}
        assert dna.pacing["medium"] == 1.0
        assert dna.complexity["moderate"] == 1.0

    def test_family_comedy_is_light_and_simple(self):
        dna = analyze_content(2, MediaType.MOVIE, [35, 10751], today=TODAY)

        assert dna.tone["lighthearted"] == 1.0
        assert dna.tone["humorous"] == 0.5
        assert dna.themes["family"] == 1.0
        assert dna.complexity["simple"] == 1.0

    def test_runtime_drives_movie_pacing(self):
        long_film = analyze_content(3, MediaType.MOVIE, [28], runtime=170, today=TODAY)
        short_action = analyze_content(4, MediaType.MOVIE, [18, 28], runtime=90, today=TODAY)

        assert long_film.pacing["slow"] == 1.0
        assert short_action.pacing["fast"] == 1.0

    def test_keywords_refine_themes_and_setting(self):
        dna = analyze_content(
            5,
            MediaType.MOVIE,
            [18],
            keywords=["Revenge", "time travel", "New York City"],
            today=TODAY,
        )

        assert dna.themes["justice"] == 1.0
        assert dna.setting["futuristic"] == 1.0
        assert dna.setting["urban"] > 0
        assert dna.keywords == ["revenge", "time travel", "new york city"]

    def test_older_release_leans_historical(self):
        dna = analyze_content(6, MediaType.MOVIE, [18], release_date="1970-05-01", today=TODAY)

        assert dna.setting["historical"] == 1.0
        assert dna.setting["contemporary"] == 0.6667

    def test_acclaimed_niche_title_is_complex(self):
        dna = analyze_content(7, MediaType.MOVIE, [18, 35], rating=8.1, vote_count=2500, today=TODAY)
        assert dna.complexity["complex"] == 1.0


class TestDNAFromDetails:
    """Tests for dna_from_details."""

    def test_movie_details(self):
        details = {
            "id": 27205,
            "genres": [{"id": 28, "name": "Action"}, {"id": 878, "name": "Science Fiction"}],
            "runtime": 148,
            "release_date": "2010-07-15",
            "vote_average": 8.4,
            "vote_count": 35000,
            "credits": {
                "crew": [
                    {"name": "Christopher Nolan", "job": "Director"},
                    {"name": "Hans Zimmer", "job": "Original Music Composer"},
                ],
                "cast": [{"name": f"Actor {i}"} for i in range(8)],
            },
            "keywords": {"keywords": [{"name": "dream"}, {"name": "heist"}]},
        }

        dna = dna_from_details(details, "movie", today=TODAY)

        assert dna.key == "movie-27205"
        assert dna.directors == ["Christopher Nolan"]
        assert dna.actors == [f"Actor {i}" for i in range(5)]
        assert dna.keywords == ["dream", "heist"]
        assert dna.setting["futuristic"] == 1.0

    def test_tv_details_use_creators_and_episode_runtime(self):
        details = {
            "id": 1396,
            "genres": [{"id": 18}, {"id": 80}],
            "episode_run_time": [47],
            "first_air_date": "2008-01-20",
            "created_by": [{"name": "Vince Gilligan"}],
            "credits": {"crew": [], "cast": [{"name": "Bryan Cranston"}]},
            "keywords": {"results": [{"name": "drug dealer"}]},
        }

        dna = dna_from_details(details, MediaType.TV, today=TODAY)

        assert dna.media_type is MediaType.TV
        assert dna.directors == ["Vince Gilligan"]
        assert dna.actors == ["Bryan Cranston"]
        assert dna.keywords == ["drug dealer"]
        assert dna.themes["justice"] == 1.0

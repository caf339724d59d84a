from netescola.models.student import SchoolGrade
from netescola.models.video import Video, VideoSource
from netescola.services.catalog import ALLOWED_GRADES, VideoCatalog, filter_by_allowed_grades, load_catalog_file

from conftest import make_video


def test_every_catalog_video_has_recognized_grades():
    catalog = VideoCatalog()
    assert len(catalog) > 0
    for video in catalog.all_videos():
        assert video.grade_levels
        assert video.grade_levels <= ALLOWED_GRADES


def test_legacy_grades_are_dropped_at_load():
    raw_ids = {entry['id'] for entry in load_catalog_file()}
    loaded_ids = {video.id for video in VideoCatalog().all_videos()}

    assert "yt_legacy_frações" in raw_ids
    assert "yt_legacy_frações" not in loaded_ids


def test_filter_restricts_grade_levels():
    mixed = make_video("mixed", "Matemática", grades=(SchoolGrade.SERIE_1_EM, SchoolGrade.SERIE_2_EM))
    kept = filter_by_allowed_grades([mixed], frozenset({SchoolGrade.SERIE_1_EM}))

    assert kept[0].grade_levels == frozenset({SchoolGrade.SERIE_1_EM})


def test_from_dict_ignores_unknown_grade_labels():
    video = Video.from_dict({
        'id': 'v1',
        'title': 'Frações',
        'videoUrl': 'https://www.youtube.com/watch?v=abcdefghijk',
        'subject': 'Matemática',
        'gradeLevel': ['8º Ano EF', '9º Ano EF'],
    })
    assert video.grade_levels == frozenset({SchoolGrade.ANO_9_EF})
    assert video.source is VideoSource.OTHER


def test_for_grade_and_by_subject():
    catalog = VideoCatalog()

    first_year = catalog.for_grade(SchoolGrade.SERIE_1_EM)
    assert first_year
    assert all(SchoolGrade.SERIE_1_EM in video.grade_levels for video in first_year)

    curated_chem = catalog.by_subject("química", VideoSource.CURATED_CHANNEL)
    assert curated_chem
    assert all(video.is_curated and video.subject == "Química" for video in curated_chem)


def test_to_dict_round_trips_catalog_layout():
    entry = load_catalog_file()[0]
    video = Video.from_dict(entry)
    assert video.to_dict() == entry

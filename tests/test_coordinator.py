"""End-to-end tests for the sorting pipeline."""

import re
from datetime import datetime
from unittest.mock import patch

import pytest

from conftest import JUNE_15_2023, FakeTag, set_mtime, tree_contents
from media_sorter.config import RunConfig, TransferMode
from media_sorter.coordinator import InsufficientSpaceError, MediaSorter
from media_sorter.decoder import MetadataDecoder
from media_sorter.executor import TransferExecutor
from media_sorter.models import SkipReason, TransferOutcome


@pytest.fixture
def no_exif():
    with patch('media_sorter.metadata.exifread.process_file', return_value={}):
        yield


@pytest.fixture
def sample_tree(create_media):
    """A small camera dump with photos, raw files, movies and noise."""
    create_media('DCIM/100/IMG_0001.JPG', content=b'jpeg-one')
    create_media('DCIM/100/IMG_0002.jpg', content=b'jpeg-two', mtime=datetime(2022, 1, 2, 8, 0))
    create_media('DCIM/100/DSC_0003.NEF', content=b'raw-three')
    create_media('DCIM/101/scan.tif', content=b'tiff-four')
    create_media('Videos/clip.MOV', content=b'movie-five')
    create_media('Videos/notes.txt', content=b'ignored')
    create_media('.thumbnails/IMG_0001.JPG', content=b'thumb')


class TestCopyRun:
    """Test a full copy run."""

    def test_files_land_in_date_folders(self, make_config, sample_tree, dest_root, reporter, no_exif):
        config = make_config(raw_format='%Y/raw/%m', movie_format='%Y/movies',
                             exclude=re.compile(r'/\.thumbnails/'))

        stats = MediaSorter(config, reporter).run()

        assert tree_contents(dest_root) == {
            '2023/2023-06-15/IMG_0001.JPG': b'jpeg-one',
            '2022/2022-01-02/IMG_0002.jpg': b'jpeg-two',
            '2023/raw/06/DSC_0003.NEF': b'raw-three',
            '2023/2023-06-15/scan.tif': b'tiff-four',
            '2023/movies/clip.MOV': b'movie-five',
        }
        assert stats.candidates == 5
        assert stats.failed == 0

    def test_unknown_extensions_never_transferred(self, make_config, sample_tree, dest_root, reporter, no_exif):
        MediaSorter(make_config(exclude=re.compile(r'/\.thumbnails/')), reporter).run()

        assert not any(path.name == 'notes.txt' for path in dest_root.rglob('*'))
        assert all('notes.txt' not in line for line in reporter.lines)

    def test_excluded_paths_are_never_transferred(self, make_config, sample_tree, dest_root, reporter, no_exif):
        stats = MediaSorter(make_config(exclude=re.compile(r'/\.thumbnails/')), reporter).run()

        assert stats.candidates == 5
        assert (dest_root / '2023' / '2023-06-15' / 'IMG_0001.JPG').read_bytes() == b'jpeg-one'
        assert all('.thumbnails' not in line for line in reporter.lines)

    def test_second_run_transfers_nothing(self, make_config, sample_tree, dest_root, reporter, no_exif):
        config = make_config(exclude=re.compile(r'/\.thumbnails/'))
        first = MediaSorter(config, reporter).run()
        snapshot = tree_contents(dest_root)
        reporter.lines.clear()

        second = MediaSorter(config, reporter).run()

        assert first.performed == 5
        assert second.performed == 0
        assert second.skips[SkipReason.DESTINATION_EXISTS] == 5
        assert reporter.lines == []
        assert tree_contents(dest_root) == snapshot

    def test_exif_date_used_over_modification_time(self, make_config, create_media, dest_root, reporter):
        create_media('photo.jpg', mtime=JUNE_15_2023)
        tags = {'EXIF DateTimeOriginal': FakeTag('2010:10:10 10:10:10')}

        with patch('media_sorter.metadata.exifread.process_file', return_value=tags):
            MediaSorter(make_config(), reporter).run()

        assert (dest_root / '2010' / '2010-10-10' / 'photo.jpg').exists()
        assert not (dest_root / '2023').exists()


class TestMoveAndDelete:
    """Test move and delete-duplicates runs."""

    def test_move_empties_source(self, make_config, sample_tree, source_root, dest_root, reporter, no_exif):
        config = make_config(mode=TransferMode.MOVE, exclude=re.compile(r'/\.thumbnails/'))

        stats = MediaSorter(config, reporter).run()

        assert stats.performed == 5
        remaining = sorted(p.name for p in source_root.rglob('*') if p.is_file())
        assert remaining == ['IMG_0001.JPG', 'notes.txt']
        assert (dest_root / '2023' / '2023-06-15' / 'IMG_0001.JPG').read_bytes() == b'jpeg-one'

    def test_delete_after_copy_removes_only_duplicates(self, make_config, sample_tree, source_root, dest_root,
                                                        reporter, no_exif):
        exclude = re.compile(r'/\.thumbnails/')
        MediaSorter(make_config(exclude=exclude), reporter).run()
        edited = source_root / 'DCIM' / '100' / 'IMG_0002.jpg'
        edited.write_bytes(b'edited, now longer')
        set_mtime(edited, datetime(2022, 1, 2, 8, 0))

        stats = MediaSorter(make_config(mode=TransferMode.DELETE, exclude=exclude), reporter).run()

        assert stats.performed == 4
        assert stats.outcomes[TransferOutcome.SKIPPED_DIFF_SIZE] == 1
        remaining = sorted(p.name for p in source_root.rglob('*') if p.is_file())
        assert remaining == ['IMG_0001.JPG', 'IMG_0002.jpg', 'notes.txt']

    def test_delete_without_destination_copies_removes_nothing(self, make_config, sample_tree, source_root,
                                                               reporter, no_exif):
        before = tree_contents(source_root)

        stats = MediaSorter(make_config(mode=TransferMode.DELETE), reporter).run()

        assert stats.performed == 0
        assert stats.skips[SkipReason.DESTINATION_MISSING] == 6
        assert tree_contents(source_root) == before


class TestDryRunPipeline:
    """Dry-run over the whole pipeline."""

    @pytest.mark.parametrize('mode', list(TransferMode))
    def test_no_mutation(self, make_config, sample_tree, source_root, dest_root, reporter, no_exif, mode):
        source_before = tree_contents(source_root)

        MediaSorter(make_config(mode=mode, dry_run=True), reporter).run()

        assert tree_contents(source_root) == source_before
        assert tree_contents(dest_root) == {}

    def test_reports_planned_actions(self, make_config, create_media, dest_root, reporter, no_exif):
        source = create_media('photo.jpg')

        stats = MediaSorter(make_config(dry_run=True), reporter).run()

        target = dest_root / '2023' / '2023-06-15' / 'photo.jpg'
        assert reporter.lines == [f"mkdir -p {target.parent}", f"cp {source} {target}"]
        assert stats.dry_run is True
        assert stats.performed == 1


class TestWorkerCounts:
    """The result tree does not depend on pool sizes."""

    def test_pool_size_invariance(self, tmp_path, create_media, reporter, no_exif):
        source = tmp_path / 'many'
        for i in range(60):
            create_media(f'dir{i % 7}/img_{i:03d}.jpg', content=b'x' * i, base=source)
            create_media(f'dir{i % 5}/raw_{i:03d}.nef', content=b'r' * i, base=source)

        results = []
        for decoders, executors in ((1, 1), (4, 2), (8, 5)):
            dest = tmp_path / f'dest_{decoders}_{executors}'
            config = RunConfig(
                source_root=source, dest_root=dest, mode=TransferMode.COPY,
                raw_format='%Y/raw', decoder_workers=decoders, executor_workers=executors,
                candidate_buffer=2, request_buffer=2,
            )
            MediaSorter(config, reporter).run()
            results.append(tree_contents(dest))

        assert len(results[0]) == 120
        assert results[0] == results[1] == results[2]


class TestPreconditions:
    """Fatal errors raised before any work starts."""

    def test_missing_source_raises(self, tmp_path, reporter):
        config = RunConfig(source_root=tmp_path / 'missing', dest_root=tmp_path / 'dest')

        with pytest.raises(FileNotFoundError):
            MediaSorter(config, reporter).run()
        assert reporter.lines == []

    def test_insufficient_space_aborts_copy(self, make_config, create_media, dest_root, reporter):
        create_media('photo.jpg')

        with patch('media_sorter.coordinator.get_available_space', return_value=1):
            with pytest.raises(InsufficientSpaceError, match='Insufficient space'):
                MediaSorter(make_config(min_free_space_gb=1), reporter).run()
        assert tree_contents(dest_root) == {}

    def test_space_check_skipped_for_dry_run(self, make_config, create_media, reporter, no_exif):
        create_media('photo.jpg')

        with patch('media_sorter.coordinator.get_available_space', return_value=1) as space:
            MediaSorter(make_config(min_free_space_gb=1, dry_run=True), reporter).run()

        space.assert_not_called()

    def test_destination_inside_source_is_not_rewalked(self, source_root, create_media, reporter, no_exif):
        create_media('photo.jpg')
        config = RunConfig(source_root=source_root, dest_root=source_root / 'sorted', mode=TransferMode.COPY)

        stats = MediaSorter(config, reporter).run()
        second = MediaSorter(config, reporter).run()

        assert stats.candidates == 1
        assert second.candidates == 1
        assert (source_root / 'sorted' / '2023' / '2023-06-15' / 'photo.jpg').exists()


class TestWorkerFailures:
    """Errors escaping a worker loop surface from run()."""

    def test_decoder_crash_reaches_caller(self, make_config, create_media, reporter, no_exif):
        for i in range(10):
            create_media(f'photo_{i}.jpg')
        config = make_config(decoder_workers=1, candidate_buffer=2)

        with patch.object(MetadataDecoder, 'work', side_effect=RuntimeError('decoder crashed')):
            with pytest.raises(RuntimeError, match='decoder crashed'):
                MediaSorter(config, reporter).run()

    def test_executor_crash_reaches_caller(self, make_config, create_media, dest_root, reporter, no_exif):
        create_media('photo.jpg')

        with patch.object(TransferExecutor, 'work', side_effect=RuntimeError('executor crashed')):
            with pytest.raises(RuntimeError, match='executor crashed'):
                MediaSorter(make_config(executor_workers=1), reporter).run()

        assert tree_contents(dest_root) == {}

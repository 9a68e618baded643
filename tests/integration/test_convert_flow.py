"""
Integration tests for the raw-to-IMD workflow.

Tests complete conversions from raw files on disk to IMD files, both
through convert_image() and through the command line entry point.
"""

import io
import logging
import sys

import pytest

from raw2imd.core import ConversionOptions, EncodingMode, build_geometry
from raw2imd.imaging import CapacityError, ImageReadError, RawSource
from raw2imd.imaging.image_manager import convert_image
from raw2imd.main import main
from tests.fixtures import make_geometry, make_raw_image, read_imd, sector_payload


GEOMETRY_VALUES = dict(cylinders=2, heads=2, sectors_per_track=9, sector_length=128)
GEOMETRY_ARGS = ["-c", "2", "-h", "2", "-s", "9", "-l", "128"]


@pytest.fixture(autouse=True)
def restore_logging():
    """Remove handlers added by main() between tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def raw_file(tmp_path):
    """Interlaced 2x2x9x128 raw image."""
    path = tmp_path / "disk.raw"
    path.write_bytes(make_raw_image(build_geometry(GEOMETRY_VALUES)))
    return path


class TestConvertImage:
    """Test convert_image() end to end."""

    def test_basic_conversion(self, raw_file, tmp_path):
        """Test every track lands in the IMD file with numbering from 1."""
        imd_path = tmp_path / "disk.imd"

        plan, result = convert_image(str(raw_file), str(imd_path), GEOMETRY_VALUES,
                                     title="test disk")

        assert plan.mode == EncodingMode.FM_250K
        assert result.tracks == 4

        image = read_imd(imd_path.read_bytes())
        assert image["comment"].startswith(b"IMD 1.18: ")
        assert image["comment"].endswith(b"\r\ntest disk")
        assert [(t["cyl"], t["head"]) for t in image["tracks"]] == [
            (0, 0), (0, 1), (1, 0), (1, 1),
        ]
        for track in image["tracks"]:
            assert track["mode"] == EncodingMode.FM_250K
            assert track["smap"] == list(range(1, 10))
            assert track["flags"] == 0
            rec, payload = track["sectors"][4]
            assert rec == 0x01
            assert payload == sector_payload(track["cyl"], track["head"], 4, 128)

    def test_skewed_conversion(self, raw_file, tmp_path):
        """Test skew reorders the sector map and the payloads together."""
        imd_path = tmp_path / "skew.imd"
        values = dict(GEOMETRY_VALUES, skew0=2)

        convert_image(str(raw_file), str(imd_path), values)

        track = read_imd(imd_path.read_bytes())["tracks"][0]
        assert track["smap"] == [1, 6, 2, 7, 3, 8, 4, 9, 5]
        for number, (_, payload) in zip(track["smap"], track["sectors"]):
            assert payload == sector_payload(0, 0, number - 1, 128)

    def test_kaypro_conversion(self, tmp_path):
        """Test Kaypro tracks carry a head map of zeros on side 1."""
        geometry = make_geometry(cylinders=1, sectors_per_track=10, two_side_policy=2)
        raw_path = tmp_path / "kaypro.raw"
        raw_path.write_bytes(make_raw_image(geometry))
        imd_path = tmp_path / "kaypro.imd"

        convert_image(str(raw_path), str(imd_path),
                      dict(cylinders=1, heads=2, sectors_per_track=10,
                           sector_length=128, two_side_policy=2, mfm=True))

        side0, side1 = read_imd(imd_path.read_bytes())["tracks"]
        assert side0["flags"] == 0
        assert side0["smap"] == list(range(0, 10))
        assert side1["flags"] == 0x40
        assert side1["smap"] == list(range(10, 20))
        assert side1["hmap"] == [0] * 10

    def test_trailer_geometry(self, tmp_path):
        """Test geometry is taken from a logdisk trailer."""
        geometry = build_geometry(GEOMETRY_VALUES)
        trailer = b"5m128z9p2s2t1d1i\n"
        raw_path = tmp_path / "logdisk.raw"
        raw_path.write_bytes(make_raw_image(geometry)
                             + trailer + bytes(128 - len(trailer)))
        imd_path = tmp_path / "logdisk.imd"

        plan, result = convert_image(str(raw_path), str(imd_path), {},
                                     ConversionOptions(trailer_present=True))

        assert plan.geometry.cylinders == 2
        assert plan.mode == EncodingMode.MFM_250K
        assert plan.actual_size == plan.expected_size
        assert result.tracks == 4

    def test_explicit_values_override_trailer(self, tmp_path):
        """Test explicit values win over trailer values."""
        geometry = build_geometry(dict(GEOMETRY_VALUES, cylinders=1))
        trailer = b"5m128z9p2s2t0d1i"
        raw_path = tmp_path / "logdisk.raw"
        raw_path.write_bytes(make_raw_image(geometry)
                             + trailer + bytes(128 - len(trailer)))

        plan, _ = convert_image(str(raw_path), None, {"cylinders": 1},
                                ConversionOptions(trailer_present=True))

        assert plan.geometry.cylinders == 1

    def test_dry_run(self, raw_file, tmp_path):
        """Test a conversion without output path writes nothing."""
        plan, result = convert_image(str(raw_file), None, GEOMETRY_VALUES)

        assert result.tracks == 4
        assert sorted(p.name for p in tmp_path.iterdir()) == ["disk.raw"]

    def test_capacity_error_creates_no_file(self, raw_file, tmp_path):
        """Test a size mismatch is detected before the output is created."""
        imd_path = tmp_path / "disk.imd"

        with pytest.raises(CapacityError):
            convert_image(str(raw_file), str(imd_path), dict(GEOMETRY_VALUES, cylinders=3))

        assert not imd_path.exists()

    def test_forced_short_file(self, raw_file, tmp_path):
        """Test -f conversion stops at the short read; earlier tracks remain."""
        imd_path = tmp_path / "short.imd"

        with pytest.raises(ImageReadError):
            convert_image(str(raw_file), str(imd_path), dict(GEOMETRY_VALUES, cylinders=3),
                          ConversionOptions(force_short=True))

        assert len(read_imd(imd_path.read_bytes())["tracks"]) == 4

    def test_missing_raw_file(self, tmp_path):
        with pytest.raises(ImageReadError):
            convert_image(str(tmp_path / "missing.raw"), None, GEOMETRY_VALUES)

    def test_forced_short_file_stops_before_trailer(self, tmp_path):
        """Test trailer bytes are never read as sector data."""
        geometry = build_geometry(dict(cylinders=1, heads=1, sectors_per_track=4,
                                       sector_length=128))
        trailer = b"5m128z4p1s1t"
        raw_path = tmp_path / "short.raw"
        raw_path.write_bytes(make_raw_image(geometry)[:448]
                             + trailer + bytes(128 - len(trailer)))
        imd_path = tmp_path / "short.imd"

        with pytest.raises(ImageReadError) as exc_info:
            convert_image(str(raw_path), str(imd_path), {},
                          ConversionOptions(force_short=True, trailer_present=True))

        assert "sector 3" in str(exc_info.value)
        assert read_imd(imd_path.read_bytes())["tracks"] == []


class TestRawSource:
    """Test RawSource reads."""

    def test_payload_limit(self, tmp_path):
        """Test reads stop at the payload limit while the trailer stays readable."""
        path = tmp_path / "disk.raw"
        path.write_bytes(bytes(range(200)))

        with RawSource(str(path)) as source:
            source.set_payload_limit(150)
            assert len(source.read(100)) == 100
            assert source.read(100) == bytes(range(100, 150))
            assert source.read(10) == b""
            assert source.read_trailer_window(20) == bytes(range(180, 200))
            assert source.tell() == 150

    def test_no_limit(self, tmp_path):
        path = tmp_path / "disk.raw"
        path.write_bytes(bytes(300))

        with RawSource(str(path)) as source:
            assert source.size == 300
            assert len(source.read(512)) == 300


class TestCommandLine:
    """Test main() entry point."""

    def test_success(self, raw_file, tmp_path):
        imd_path = tmp_path / "out.imd"

        exit_code = main([*GEOMETRY_ARGS, "-m", str(raw_file), str(imd_path)])

        assert exit_code == 0
        tracks = read_imd(imd_path.read_bytes())["tracks"]
        assert len(tracks) == 4
        assert tracks[0]["mode"] == EncodingMode.MFM_250K

    def test_8_inch_rate_and_skew(self, raw_file, tmp_path):
        """Test -8, -r and an attached negative skew."""
        imd_path = tmp_path / "out.imd"

        exit_code = main([*GEOMETRY_ARGS, "-8", "-r", "300", "-k-2",
                          str(raw_file), str(imd_path)])

        assert exit_code == 0
        track = read_imd(imd_path.read_bytes())["tracks"][0]
        assert track["mode"] == EncodingMode.FM_300K
        assert sorted(track["smap"]) == list(range(1, 10))

    def test_capacity_mismatch(self, raw_file, tmp_path, capsys):
        """Test an oversized raw file fails with exit code 2 and no output."""
        imd_path = tmp_path / "out.imd"

        exit_code = main(["-c", "1", "-h", "2", "-s", "9", "-l", "128",
                          str(raw_file), str(imd_path)])

        assert exit_code == 2
        assert not imd_path.exists()
        assert "image file too large" in capsys.readouterr().err

    def test_missing_geometry(self, raw_file, capsys):
        """Test an incomplete geometry is a usage error."""
        exit_code = main(["-c", "2", str(raw_file)])

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "heads" in err
        assert "usage:" in err

    def test_verbose_track_listing(self, raw_file, capsys):
        """Test -v -v lists one line per track."""
        exit_code = main([*GEOMETRY_ARGS, "-v", "-v", str(raw_file)])

        assert exit_code == 0
        out = capsys.readouterr().out
        assert "FM-250k 9x128: 1 2 3 4 5 6 7 8 9" in out
        assert out.count("9x128:") == 4

    def test_comment_from_stdin(self, raw_file, tmp_path, monkeypatch):
        """Test -C appends stdin text after the title."""
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(b"\r\nfrom stdin")))
        imd_path = tmp_path / "out.imd"

        exit_code = main([*GEOMETRY_ARGS, "-C", "-T", "Title",
                          str(raw_file), str(imd_path)])

        assert exit_code == 0
        comment = read_imd(imd_path.read_bytes())["comment"]
        assert comment.endswith(b"\r\nTitle\r\nfrom stdin")

    def test_unknown_option(self, capsys):
        """Test argparse usage errors exit with the usage code."""
        assert main(["-Z", "x.raw"]) == 1
        assert "usage:" in capsys.readouterr().err

    def test_missing_raw_file_argument(self):
        assert main(["-c", "2"]) == 1

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert "raw2imd" in capsys.readouterr().out

    def test_log_file(self, raw_file, tmp_path):
        """Test --log-file receives debug output."""
        log_path = tmp_path / "logs" / "raw2imd.log"

        exit_code = main([*GEOMETRY_ARGS, "--log-file", str(log_path), str(raw_file)])

        assert exit_code == 0
        assert "Options:" in log_path.read_text()

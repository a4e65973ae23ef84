"""
Tests for the extraction entry points
"""
import io
import json
import zlib
from datetime import datetime, timezone

import lz4.block
import pytest

from astrometa import (
    AttachmentReadError, ExtractionConfig, FormatError, ParseStage, SourceReadError,
    UnsupportedFormatError, detect_format, extract_metadata, extract_metadata_from_path,
    read_attachment_data,
)
from astrometa.file_formats import get_file_format_processor
from astrometa.file_formats.xisfFile.codecs import shuffle_bytes

from conftest import build_fits_header, build_xisf


class TestDetectFormat:
    """Test signature sniffing."""

    @pytest.mark.parametrize("head,expected", [
        (b'XISF0100\x00\x10\x00\x00\x00\x00\x00\x00', "XISF"),
        (b'SIMPLE  =                    T', "FITS"),
        (b'\x1f\x8b\x08\x00', "GZIP"),
        (b'\x89PNG\r\n\x1a\n', None),
        (b'', None),
    ])
    def test_detect(self, head, expected):
        assert detect_format(head) == expected


class TestFormatSelection:
    """Test hint, signature and extension based handler selection."""

    def test_signature_selects_fits(self, sample_fits_bytes, extraction_config):
        md = extract_metadata(sample_fits_bytes, config=extraction_config)
        assert md.source_format == "FITS"

    def test_signature_selects_gzip(self, sample_fits_gz_bytes, extraction_config):
        md = extract_metadata(sample_fits_gz_bytes, config=extraction_config)
        assert md.source_format == "FITS"
        assert md.exposure.object_name == "M31"

    @pytest.mark.parametrize("hint", ["FITS", "fits", ".fit", "fts"])
    def test_hint_accepted(self, sample_fits_bytes, extraction_config, hint):
        md = extract_metadata(sample_fits_bytes, format_hint=hint, config=extraction_config)
        assert md.source_format == "FITS"

    def test_hint_overrides_signature(self, sample_fits_bytes, extraction_config):
        with pytest.raises(FormatError) as exc_info:
            extract_metadata(sample_fits_bytes, format_hint="XISF", config=extraction_config)
        assert exc_info.value.stage is ParseStage.SIGNATURE

    def test_unknown_hint(self, sample_fits_bytes, extraction_config):
        with pytest.raises(UnsupportedFormatError):
            extract_metadata(sample_fits_bytes, format_hint="tiff", config=extraction_config)

    def test_unrecognized_signature(self, extraction_config):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            extract_metadata(b'\x89PNG\r\n\x1a\n' + b'\x00' * 100, config=extraction_config)
        assert exc_info.value.error_code == "UNSUPPORTED_FORMAT"

    def test_file_object_source(self, sample_fits_bytes, extraction_config):
        md = extract_metadata(io.BytesIO(sample_fits_bytes), config=extraction_config)
        assert md.detector.width == 4096

    def test_supported_formats(self):
        formats = get_file_format_processor().get_supported_formats()
        assert list(formats) == ["XISF", "FITS", "GZIP"]
        assert formats["FITS"] == [".fits", ".fit", ".fts"]
        assert ".fits.gz" in formats["GZIP"]

        formats["XISF"].append(".tif")
        assert get_file_format_processor().get_supported_formats()["XISF"] == [".xisf"]


class TestExtractFromPath:
    """Test reading sources from disk."""

    def test_fits_file(self, tmp_path, sample_fits_bytes, extraction_config):
        path = tmp_path / "light_001.fits"
        path.write_bytes(sample_fits_bytes)
        md = extract_metadata_from_path(path, config=extraction_config)
        assert md.exposure.object_name == "M31"

    def test_xisf_file(self, tmp_path, sample_xisf_bytes, extraction_config):
        path = tmp_path / "master.xisf"
        path.write_bytes(sample_xisf_bytes)
        md = extract_metadata_from_path(str(path), config=extraction_config)
        assert md.source_format == "XISF"
        assert md.attachments[0].checksum_valid is True

    def test_missing_file(self, tmp_path, extraction_config):
        with pytest.raises(SourceReadError) as exc_info:
            extract_metadata_from_path(tmp_path / "missing.fits", config=extraction_config)
        assert exc_info.value.stage is ParseStage.SOURCE_READ
        assert exc_info.value.file_path.endswith("missing.fits")

    def test_extension_fallback(self, tmp_path, extraction_config):
        path = tmp_path / "broken.fits"
        path.write_bytes(b'GARBAGE!' * 400)
        with pytest.raises(FormatError) as exc_info:
            extract_metadata_from_path(path, config=extraction_config)
        assert exc_info.value.stage is ParseStage.SIGNATURE


class TestXisfMetadata:
    """Test the XISF view of the metadata model."""

    @pytest.fixture
    def metadata(self, sample_xisf_bytes, extraction_config):
        return extract_metadata(sample_xisf_bytes, config=extraction_config)

    def test_fits_keywords_mapped(self, metadata):
        assert metadata.source_format == "XISF"
        assert metadata.exposure.object_name == "NGC 7000"
        assert metadata.detector.pixel_size == pytest.approx(3.76)
        assert metadata.exposure.date_obs == datetime(2024, 3, 2, 3, 0, tzinfo=timezone.utc)

    def test_properties_override_keywords(self, metadata):
        assert metadata.equipment.focal_length == pytest.approx(530.0)
        assert metadata.equipment.aperture == pytest.approx(106.0)
        assert metadata.equipment.focal_ratio == pytest.approx(5.0)
        assert metadata.detector.camera_name == "ZWO ASI294MC"
        assert metadata.mount.longitude == pytest.approx(-30.0)
        assert metadata.mount.latitude is None

    def test_image_attributes(self, metadata):
        assert (metadata.detector.width, metadata.detector.height) == (4, 3)
        assert metadata.exposure.frame_type == "Flat"
        assert metadata.detector.binning_declared is False

    def test_xisf_section(self, metadata):
        assert metadata.xisf.version == "1.0"
        assert metadata.xisf.creator == "PixInsight 1.8.9"
        assert metadata.xisf.creation_time == datetime(2024, 3, 2, 10, 15, tzinfo=timezone.utc)
        assert metadata.xisf.block_alignment == 4096
        assert metadata.environment.software_version == "PixInsight 1.8.9"

    def test_raw_headers(self, metadata):
        assert metadata.raw_headers["OBJECT"] == "NGC 7000"
        assert metadata.raw_headers["HISTORY"] == "Calibrated"
        assert metadata.raw_headers["INSTRUMENT.TELESCOPE.FOCALLENGTH"] == "0.53"
        assert metadata.raw_headers["INSTRUMENT.CAMERA.NAME"] == "ZWO ASI294MC"

    def test_color_management(self, metadata):
        color = metadata.color_management
        assert color.color_space == "Gray"
        assert color.icc_profile is None
        assert color.display_function.function_type == "AutoStretch"
        assert color.display_function.parameters["m"] == (0.5, 0.5, 0.5, 0.5)
        assert color.display_function.parameters["h"] == (1.0, 1.0, 1.0, 1.0)

    def test_icc_profile_attachment(self, extraction_config):
        body = ('<Image geometry="2:2:1" sampleFormat="UInt8" colorSpace="RGB">'
                '<ICCProfile location="inline:hex">00010203</ICCProfile></Image>')
        md = extract_metadata(build_xisf(body, [b'\x00' * 4]), config=extraction_config)
        assert md.color_management.icc_profile.kind == "ICCProfile"
        assert md.color_management.icc_profile.inline_data == b'\x00\x01\x02\x03'
        assert len(md.attachments) == 2

    def test_checksum_mismatch_keeps_metadata(self, sample_xisf_parts, extraction_config):
        from conftest import sha1_hex
        digest = sha1_hex(sample_xisf_parts['blocks'][0])
        body = sample_xisf_parts['body'].replace(digest, 'f' * 40)
        md = extract_metadata(build_xisf(body, sample_xisf_parts['blocks']), config=extraction_config)

        assert md.attachments[0].checksum_valid is False
        assert md.exposure.object_name == "NGC 7000"
        assert md.equipment.focal_length == pytest.approx(530.0)

    def test_to_dict_is_json_ready(self, metadata):
        data = metadata.to_dict()
        text = json.dumps(data)
        assert '"NGC 7000"' in text
        assert data['exposure']['date_obs'] == "2024-03-02T03:00:00+00:00"
        assert data['attachments'][0]['location_method'] == "attachment"
        assert 'inline_data' not in data['attachments'][0]
        assert data['wcs'] is None


class TestSessionDateConfig:
    """Test session date computation driven by configuration."""

    def test_not_computed_by_default(self, sample_xisf_bytes, extraction_config):
        md = extract_metadata(sample_xisf_bytes, config=extraction_config)
        assert md.exposure.session_date is None

    def test_computed_from_longitude(self, sample_xisf_bytes):
        md = extract_metadata(sample_xisf_bytes, config=ExtractionConfig(compute_session_date=True))
        assert md.exposure.session_date == datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert md.exposure.date_obs == datetime(2024, 3, 2, 3, 0, tzinfo=timezone.utc)

    def test_configured_timezone_wins(self, sample_xisf_bytes):
        config = ExtractionConfig(compute_session_date=True, timezone="Asia/Tokyo")
        md = extract_metadata(sample_xisf_bytes, config=config)
        # 03:00Z is 12:00 in Tokyo, already past the session boundary
        assert md.exposure.session_date == datetime(2024, 3, 2, tzinfo=timezone.utc)


class TestReadAttachmentData:
    """Test on-demand block decoding."""

    def test_zlib_block(self, sample_xisf_bytes, sample_pixels, extraction_config):
        md = extract_metadata(sample_xisf_bytes, config=extraction_config)
        assert read_attachment_data(sample_xisf_bytes, md.attachments[0]) == sample_pixels

    def test_from_path(self, tmp_path, sample_xisf_bytes, sample_pixels, extraction_config):
        path = tmp_path / "master.xisf"
        path.write_bytes(sample_xisf_bytes)
        md = extract_metadata_from_path(path, config=extraction_config)
        assert read_attachment_data(path, md.attachments[0]) == sample_pixels

    @pytest.mark.parametrize("codec,mode", [("lz4", "default"), ("lz4hc", "high_compression")])
    def test_lz4_shuffled_block(self, sample_pixels, extraction_config, codec, mode):
        stored = lz4.block.compress(shuffle_bytes(sample_pixels, 2), mode=mode, store_size=False)
        body = (f'<Image geometry="4:3:1" sampleFormat="UInt16" location="{{loc0}}" '
                f'compression="{codec}+sh:{len(sample_pixels)}:2"/>')
        data = build_xisf(body, [stored])
        md = extract_metadata(data, config=extraction_config)

        assert md.attachments[0].is_shuffled
        assert read_attachment_data(data, md.attachments[0]) == sample_pixels

    def test_shuffle_item_size_from_sample_format(self, sample_pixels, extraction_config):
        stored = zlib.compress(shuffle_bytes(sample_pixels, 2))
        body = (f'<Image geometry="4:3:1" sampleFormat="UInt16" location="{{loc0}}" '
                f'compression="zlib+sh:{len(sample_pixels)}"/>')
        data = build_xisf(body, [stored])
        md = extract_metadata(data, config=extraction_config)
        assert read_attachment_data(data, md.attachments[0]) == sample_pixels

    def test_uncompressed_implicit_block(self, sample_pixels, extraction_config):
        data = build_xisf('<Image geometry="4:3:1" sampleFormat="UInt16"/>', [sample_pixels])
        md = extract_metadata(data, config=extraction_config)
        assert read_attachment_data(data, md.attachments[0]) == sample_pixels

    def test_inline_block(self, extraction_config):
        data = build_xisf('<ICCProfile location="inline:hex">cafe</ICCProfile>')
        md = extract_metadata(data, config=extraction_config)
        assert read_attachment_data(data, md.attachments[0]) == b'\xca\xfe'

    def test_url_block_not_readable(self, extraction_config):
        data = build_xisf('<Image geometry="4:3:1" sampleFormat="UInt16" location="url(https://example.com/a)"/>')
        md = extract_metadata(data, config=extraction_config)
        with pytest.raises(AttachmentReadError) as exc_info:
            read_attachment_data(data, md.attachments[0])
        assert exc_info.value.error_code == "BLOCK_NOT_LOCAL"

    def test_unknown_codec_not_decodable(self, sample_pixels, extraction_config):
        body = f'<Image geometry="4:3:1" sampleFormat="UInt16" location="{{loc0}}" compression="zstd:24"/>'
        data = build_xisf(body, [sample_pixels])
        md = extract_metadata(data, config=extraction_config)
        with pytest.raises(AttachmentReadError) as exc_info:
            read_attachment_data(data, md.attachments[0])
        assert exc_info.value.error_code == "BLOCK_DECODE_ERROR"

    def test_truncated_source(self, sample_xisf_bytes, extraction_config):
        md = extract_metadata(sample_xisf_bytes, config=extraction_config)
        with pytest.raises(AttachmentReadError) as exc_info:
            read_attachment_data(sample_xisf_bytes[:-5], md.attachments[0])
        assert exc_info.value.error_code == "BLOCK_TRUNCATED"

    def test_missing_file(self, tmp_path, sample_xisf_bytes, extraction_config):
        md = extract_metadata(sample_xisf_bytes, config=extraction_config)
        with pytest.raises(AttachmentReadError) as exc_info:
            read_attachment_data(tmp_path / "gone.xisf", md.attachments[0])
        assert exc_info.value.attachment_id == "main"


class TestFitsExtraction:
    """Test FITS extraction through the public entry point."""

    def test_unparseable_values_do_not_abort(self, sample_fits_header, extraction_config):
        sample_fits_header['CCD-TEMP'] = 'cold'
        sample_fits_header['SITELAT'] = 'north'
        md = extract_metadata(build_fits_header(sample_fits_header), config=extraction_config)
        assert md.detector.temperature is None
        assert md.mount.latitude is None
        assert md.mount.longitude == pytest.approx(-114.07)

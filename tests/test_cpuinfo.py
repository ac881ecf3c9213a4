"""
Tests for cpuinfo feature extraction.
"""

import pytest

from node_features.cpuinfo import (
    CpuFeatureExtractor,
    CpuFeatures,
    DecoderKind,
    FieldParser,
    FieldParserRegistry,
)
from node_features.isa_flags import IsaFlagSet, IsaToken


class TestFieldParserRegistry:
    """Tests for keyword lookup."""

    def test_lookup_ignores_case(self):
        """Test keywords match case-insensitively."""
        registry = FieldParserRegistry()

        parser = registry.lookup("Model Name")
        assert parser is not None
        assert parser.kind == DecoderKind.MODEL_NAME
        assert registry.lookup("VENDOR_ID").target == "vendor_id"

    def test_lookup_requires_full_length(self):
        """Test prefixes and extensions of a keyword do not match."""
        registry = FieldParserRegistry()

        assert registry.lookup("model") is None
        assert registry.lookup("flag") is None
        assert registry.lookup("flagss") is None
        assert registry.lookup("") is None

    def test_custom_parsers(self):
        """Test a registry built from custom parsers."""
        registry = FieldParserRegistry([
            FieldParser("vendor", DecoderKind.COPY_STRING, "vendor_id"),
        ])
        cif = CpuFeatures()

        assert registry.lookup("vendor_id") is None
        assert registry.decode(registry.lookup("vendor"), "AuthenticAMD", cif)
        assert cif.vendor_id == "AuthenticAMD"


class TestCpuFeatures:
    """Tests for the CpuFeatures record."""

    def test_defaults_empty(self):
        """Test a new record has no features."""
        cif = CpuFeatures()
        assert cif.is_empty
        assert cif.cache_kb == 0

    def test_reset(self):
        """Test reset clears every field."""
        cif = CpuFeatures(
            vendor_id="GenuineIntel",
            model_name="E5-2695_v4",
            cache_kb=46080,
            isa_flags=IsaFlagSet.from_tokens(IsaToken.AVX),
        )
        assert not cif.is_empty

        cif.reset()
        assert cif == CpuFeatures()

    def test_flag_sets_not_shared(self):
        """Test each record gets its own flag set."""
        a, b = CpuFeatures(), CpuFeatures()
        a.isa_flags.rebuild("sse")
        assert not b.isa_flags


class TestParseLine:
    """Tests for CpuFeatureExtractor.parse_line."""

    @pytest.fixture
    def extractor(self):
        return CpuFeatureExtractor()

    def test_vendor(self, extractor):
        """Test vendor_id is copied verbatim."""
        cif = CpuFeatures()
        assert extractor.parse_line(cif, "vendor_id\t: GenuineIntel")
        assert cif.vendor_id == "GenuineIntel"

    def test_keyword_whitespace(self, extractor):
        """Test whitespace around keyword and value is ignored."""
        cif = CpuFeatures()
        assert extractor.parse_line(cif, "  cache size \t :   512 KB")
        assert cif.cache_kb == 512

    def test_value_may_contain_colon(self, extractor):
        """Test only the first colon splits keyword from value."""
        cif = CpuFeatures()
        assert extractor.parse_line(cif, "vendor_id : Odd:Vendor")
        assert cif.vendor_id == "Odd:Vendor"

    @pytest.mark.parametrize("line", [
        "",
        "no colon here",
        "processor\t: 0",
        "model\t\t: 79",
        ": GenuineIntel",
    ])
    def test_ignored_lines(self, extractor, line):
        """Test lines without a registered keyword change nothing."""
        cif = CpuFeatures()
        assert extractor.parse_line(cif, line) is False
        assert cif.is_empty

    def test_rejected_value_leaves_field(self, extractor):
        """Test an unparseable value keeps the previous field value."""
        cif = CpuFeatures(cache_kb=256, model_name="E5-2695_v4")

        assert extractor.parse_line(cif, "cache size : lots") is False
        assert extractor.parse_line(cif, "model name : QEMU Virtual CPU") is False

        assert cif.cache_kb == 256
        assert cif.model_name == "E5-2695_v4"

    def test_only_c_whitespace_trimmed(self, extractor):
        """Test keyword trimming uses the same whitespace set as the line reader."""
        cif = CpuFeatures()

        assert extractor.parse_line(cif, "vendor_id\x1c: GenuineIntel") is False
        assert extractor.parse_line(cif, "\x85vendor_id : GenuineIntel") is False
        assert cif.vendor_id is None

        assert extractor.parse_line(cif, "\v\fvendor_id\t\r: \tGenuineIntel")
        assert cif.vendor_id == "GenuineIntel"

    def test_later_line_overwrites(self, extractor):
        """Test a repeated keyword replaces the earlier value."""
        cif = CpuFeatures()
        extractor.parse_line(cif, "flags : sse avx512f")
        extractor.parse_line(cif, "flags : sse2")
        assert cif.isa_flags.tokens() == ["sse2"]


class TestExtract:
    """Tests for record extraction."""

    def test_first_record_only(self, xeon_cpuinfo):
        """Test parsing stops at the end of the first processor record."""
        cif = CpuFeatureExtractor().extract_file(xeon_cpuinfo)

        assert cif.vendor_id == "GenuineIntel"
        assert cif.model_name == "E5-2695_v4"
        assert cif.cache_kb == 46080
        assert cif.isa_flags.tokens() == [
            "sse", "sse2", "ssse3", "sse4_1", "sse4_2", "avx", "avx2",
        ]

    def test_epyc(self, epyc_cpuinfo):
        """Test an AMD EPYC file."""
        cif = CpuFeatureExtractor().extract_file(epyc_cpuinfo)

        assert cif.vendor_id == "AuthenticAMD"
        assert cif.model_name == "EPYC_7502"
        assert cif.cache_kb == 512
        assert IsaToken.AVX2 in cif.isa_flags
        assert IsaToken.AVX512F not in cif.isa_flags

    def test_avx512(self, cascade_lake_cpuinfo):
        """Test all AVX-512 extensions are recognized."""
        cif = CpuFeatureExtractor().extract_file(cascade_lake_cpuinfo)

        assert cif.model_name == "Gold_6248R"
        assert len(cif.isa_flags) == len(IsaToken)

    def test_extract_lines_into_existing_record(self):
        """Test extract fills a supplied record from plain lines."""
        cif = CpuFeatures(vendor_id="stale")
        result = CpuFeatureExtractor().extract(
            ["vendor_id : GenuineIntel", "  ", "vendor_id : AuthenticAMD"], cif,
        )
        assert result is cif
        assert cif.vendor_id == "GenuineIntel"

    @pytest.mark.parametrize("cache_line", [
        "cache size : 1e400 KB",
        "cache size : 1e308 GB",
    ])
    def test_oversized_cache_value_skipped(self, cache_line):
        """Test a cache size too large for an integer leaves the other fields intact."""
        cif = CpuFeatureExtractor().extract(
            ["vendor_id : GenuineIntel", cache_line, "flags : sse"]
        )

        assert cif.vendor_id == "GenuineIntel"
        assert cif.cache_kb == 0
        assert cif.isa_flags.tokens() == ["sse"]

    def test_non_c_whitespace_line_is_not_blank(self):
        """Test a line of other Unicode whitespace does not end the record."""
        cif = CpuFeatureExtractor().extract(
            ["vendor_id : GenuineIntel", "\x85", "cache size : 1 KB"]
        )
        assert cif.cache_kb == 1

    @pytest.mark.parametrize("chunk_size", [128, 200, 4096])
    def test_chunk_size_does_not_matter(self, xeon_cpuinfo, chunk_size):
        """Test the parsed record is independent of the read chunk size."""
        expected = CpuFeatureExtractor().extract_file(xeon_cpuinfo)
        cif = CpuFeatureExtractor(chunk_size=chunk_size).extract_file(xeon_cpuinfo)
        assert cif == expected

    def test_nul_separated_lines(self, tmp_path):
        """Test NUL bytes end lines like newlines."""
        path = tmp_path / "cpuinfo"
        path.write_bytes(b"vendor_id : GenuineIntel\0cache size : 1 MB\0")

        cif = CpuFeatureExtractor().extract_file(path)
        assert cif.vendor_id == "GenuineIntel"
        assert cif.cache_kb == 1024

    def test_empty_file(self, tmp_path):
        """Test an empty file gives an empty record."""
        path = tmp_path / "cpuinfo"
        path.write_bytes(b"")
        assert CpuFeatureExtractor().extract_file(path).is_empty


class TestExtractErrors:
    """Tests for extract_file failures."""

    def test_missing_file(self, tmp_path):
        """Test a missing file raises CpuinfoReadError."""
        from common.exceptions import CpuinfoReadError

        path = tmp_path / "missing"
        with pytest.raises(CpuinfoReadError) as exc_info:
            CpuFeatureExtractor().extract_file(path)

        assert exc_info.value.code == "CPUINFO_READ_FAILED"
        assert exc_info.value.details["path"] == str(path)
        assert isinstance(exc_info.value.cause, OSError)

    def test_line_too_long(self, tmp_path):
        """Test a line beyond the buffer limit raises LineBufferError."""
        from common.exceptions import CpuinfoError, LineBufferError

        path = tmp_path / "cpuinfo"
        path.write_text("vendor_id : GenuineIntel\nflags : " + "sse " * 200 + "\n")

        extractor = CpuFeatureExtractor(max_line_capacity=512)
        with pytest.raises(LineBufferError) as exc_info:
            extractor.extract_file(path)

        assert isinstance(exc_info.value, CpuinfoError)
        assert exc_info.value.details == {"capacity": 512, "path": str(path)}

    def test_default_path(self):
        """Test the default source is /proc/cpuinfo."""
        assert str(CpuFeatureExtractor.CPUINFO_PATH) == "/proc/cpuinfo"

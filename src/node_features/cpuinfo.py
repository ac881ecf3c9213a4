#!/usr/bin/env python3
"""
Node Features - cpuinfo Feature Extraction

Reads the first processor record of a cpuinfo-formatted file and keeps
the fields that become node features:
- vendor_id   (copied as-is)
- model name  (reduced to a compact model token)
- cache size  (converted to kilobytes)
- flags       (SSE/AVX extensions as an ISA bitmap)
"""

import errno
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

from common.decorators import timed
from common.exceptions import CpuinfoReadError, LineBufferError

from .cache_size import parse_cache_size
from .isa_flags import IsaFlagSet
from .line_reader import WHITESPACE_CHARS, StreamLineReader
from .model_name import normalize_model_name

logger = logging.getLogger(__name__)


@dataclass
class CpuFeatures:
    """Processor features parsed from cpuinfo."""

    vendor_id: Optional[str] = None     # e.g. "GenuineIntel"
    model_name: Optional[str] = None    # compact model token, e.g. "E5-2695_v4"
    cache_kb: int = 0                   # 0 = unknown
    isa_flags: IsaFlagSet = field(default_factory=IsaFlagSet)

    def reset(self) -> "CpuFeatures":
        """Clear every field together."""
        self.vendor_id = None
        self.model_name = None
        self.cache_kb = 0
        self.isa_flags.clear()
        return self

    @property
    def is_empty(self) -> bool:
        return (
            self.vendor_id is None
            and self.model_name is None
            and not self.cache_kb
            and not self.isa_flags
        )


class DecoderKind(Enum):
    """How a field value is turned into a CpuFeatures attribute."""

    COPY_STRING = "copy-string"
    CACHE_SIZE = "parse-cache-size"
    MODEL_NAME = "parse-model-name"
    ISA_FLAGS = "rebuild-flags"


@dataclass(frozen=True)
class FieldParser:
    """Registration of one cpuinfo keyword."""

    keyword: str        # matched case-insensitively, full length only
    kind: DecoderKind
    target: str         # CpuFeatures attribute written by the decoder


def _decode_copy(parser: FieldParser, text: str, cif: CpuFeatures) -> bool:
    setattr(cif, parser.target, text)
    return True


def _decode_cache_size(parser: FieldParser, text: str, cif: CpuFeatures) -> bool:
    kb = parse_cache_size(text)
    if kb is None:
        return False
    setattr(cif, parser.target, kb)
    return True


def _decode_model_name(parser: FieldParser, text: str, cif: CpuFeatures) -> bool:
    model = normalize_model_name(text)
    if model is None:
        return False
    setattr(cif, parser.target, model)
    return True


def _decode_isa_flags(parser: FieldParser, text: str, cif: CpuFeatures) -> bool:
    return getattr(cif, parser.target).rebuild(text)


DECODERS: Dict[DecoderKind, Callable[[FieldParser, str, CpuFeatures], bool]] = {
    DecoderKind.COPY_STRING: _decode_copy,
    DecoderKind.CACHE_SIZE: _decode_cache_size,
    DecoderKind.MODEL_NAME: _decode_model_name,
    DecoderKind.ISA_FLAGS: _decode_isa_flags,
}


FIELD_PARSERS: Tuple[FieldParser, ...] = (
    FieldParser("cache size", DecoderKind.CACHE_SIZE, "cache_kb"),
    FieldParser("flags", DecoderKind.ISA_FLAGS, "isa_flags"),
    FieldParser("model name", DecoderKind.MODEL_NAME, "model_name"),
    FieldParser("vendor_id", DecoderKind.COPY_STRING, "vendor_id"),
)


class FieldParserRegistry:
    """Ordered, case-insensitive keyword lookup."""

    def __init__(self, parsers: Iterable[FieldParser] = FIELD_PARSERS):
        self.parsers: Tuple[FieldParser, ...] = tuple(parsers)

    def lookup(self, keyword: str) -> Optional[FieldParser]:
        """Find the parser whose keyword equals keyword, ignoring case."""
        folded = keyword.lower()
        for parser in self.parsers:
            if len(parser.keyword) == len(keyword) and parser.keyword.lower() == folded:
                return parser
        return None

    def decode(self, parser: FieldParser, text: str, cif: CpuFeatures) -> bool:
        return DECODERS[parser.kind](parser, text, cif)


class CpuFeatureExtractor:
    """Parses cpuinfo lines into a CpuFeatures record."""

    CPUINFO_PATH = Path("/proc/cpuinfo")

    def __init__(
        self,
        registry: Optional[FieldParserRegistry] = None,
        chunk_size: int = StreamLineReader.MIN_CHUNK_SIZE,
        max_line_capacity: Optional[int] = None,
    ):
        self.registry = registry or FieldParserRegistry()
        self.chunk_size = chunk_size
        self.max_line_capacity = max_line_capacity

    def parse_line(self, cif: CpuFeatures, line: str) -> bool:
        """
        Apply one "keyword : value" line to cif.

        Returns False for lines without a colon, unknown keywords and
        values the decoder rejects; none of these are errors.
        """
        line = line.lstrip(WHITESPACE_CHARS)
        if not line:
            return False

        keyword, colon, value = line.partition(":")
        if not colon:
            return False

        parser = self.registry.lookup(keyword.rstrip(WHITESPACE_CHARS))
        if parser is None:
            return False

        if not self.registry.decode(parser, value.lstrip(WHITESPACE_CHARS), cif):
            logger.debug(
                f"Ignoring unparseable {parser.keyword!r} value: {value.strip(WHITESPACE_CHARS)!r}"
            )
            return False
        return True

    def extract(self, lines: Iterable[str], cif: Optional[CpuFeatures] = None) -> CpuFeatures:
        """
        Parse the first record of lines.

        Parsing stops at the first blank line; later records (one per
        logical processor) are not read.
        """
        if cif is None:
            cif = CpuFeatures()
        for line in lines:
            line = line.strip(WHITESPACE_CHARS)
            if not line:
                break
            self.parse_line(cif, line)
        return cif

    @timed
    def extract_file(self, path: Union[str, Path, None] = None) -> CpuFeatures:
        """
        Parse a cpuinfo file.

        Raises:
            CpuinfoReadError: the file cannot be opened or read
            LineBufferError: a line outgrew the line buffer
        """
        path = Path(path) if path is not None else self.CPUINFO_PATH

        try:
            reader = StreamLineReader.open(
                path,
                chunk_size=self.chunk_size,
                max_capacity=self.max_line_capacity,
            )
        except OSError as e:
            raise CpuinfoReadError(str(path), e.strerror or str(e), cause=e) from e

        with reader:
            cif = self.extract(reader)
            err_code, error, capacity = reader.err_code, reader.error, reader.capacity

        if err_code == 0:
            logger.debug(f"Parsed {path}: {cif}")
            return cif
        if err_code == errno.ENOMEM:
            raise LineBufferError(capacity, str(path))
        raise CpuinfoReadError(str(path), str(error), cause=error)

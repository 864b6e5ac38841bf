"""
Shared fixtures for the P-Code SDK tests.

The reference codefile holds one linked p-code segment "TEST" with two
procedures (see builders.PROC_ONE / PROC_TWO):

    procedure 1: code 0000-0009, jump table 000a, footer 000c-0015, jtab 0014h
    procedure 2: code 0016-0023, footer 0024-002d, jtab 002ch
"""

import pytest

from builders import (
    PROC_ONE,
    PROC_TWO,
    NativeProc,
    SegmentDef,
    build_codefile,
    build_segment,
)


@pytest.fixture
def two_proc_segment():
    """(segment bytes, layouts) for the two reference procedures."""
    return build_segment([PROC_ONE, PROC_TWO])


@pytest.fixture
def sample_codefile(two_proc_segment) -> bytes:
    data, _ = two_proc_segment
    return build_codefile([SegmentDef("TEST", data, kind=0, num=1)])


@pytest.fixture
def native_segment():
    """A segment with a native procedure (1) and a p-code procedure (2)."""
    native = NativeProc(
        code=bytes([0xA9, 0x00, 0x60]),
        relocation_segment=5,
        base=[0x0001],
        procedure=[0x0002, 0x0003],
    )
    return build_segment([native, PROC_ONE])


@pytest.fixture
def mixed_codefile(two_proc_segment, native_segment) -> bytes:
    """TEST (p-code), ASMCODE (native + p-code) and a DATA segment."""
    test_data, _ = two_proc_segment
    native_data, _ = native_segment
    return build_codefile([
        SegmentDef("TEST", test_data, kind=0, num=1),
        SegmentDef("ASMCODE", native_data, kind=4, num=7, machine=7, version=3),
        SegmentDef("GLOBALS", bytes(64), kind=7, num=9, machine=0, version=0),
    ])

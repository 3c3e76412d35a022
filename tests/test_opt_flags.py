"""Tests for peano opt argument composition."""

import pytest

from aie_packager.backends import make_peano_opt_args
from aie_packager.exceptions import MalformedFlagStringError

DEFAULTS = [
    "-vectorize-loops=false",
    "-vectorize-slp=false",
    "--two-entry-phi-node-folding-threshold=10",
    "-mandatory-inlining-before-opt=false",
    "-basic-aa-full-phi-analysis=true",
    "-basic-aa-max-lookup-search-depth=10",
    "-O3",
    "--inline-threshold=10",
    "--disable-builtin=memset",
    "-S",
    "in.ll",
    "-o",
    "out.ll",
]


class TestDefaults:
    def test_exact_default_list(self):
        assert make_peano_opt_args("in.ll", "out.ll") == DEFAULTS

    def test_empty_additional_flags_is_identity(self):
        assert make_peano_opt_args("in.ll", "out.ll", "") == DEFAULTS

    def test_empty_quotes_is_identity(self):
        assert make_peano_opt_args("in.ll", "out.ll", '""') == DEFAULTS

    def test_repeated_calls_are_independent(self):
        make_peano_opt_args("in.ll", "out.ll", '"-extra"')
        assert make_peano_opt_args("in.ll", "out.ll") == DEFAULTS


class TestAdditionalFlags:
    def test_opt_level_replaces_in_place(self):
        args = make_peano_opt_args("in.ll", "out.ll", '"-O2"')
        assert args.count("-O2") == 1
        assert "-O3" not in args
        assert args.index("-O2") == DEFAULTS.index("-O3")
        assert len(args) == len(DEFAULTS)

    def test_other_flags_are_appended(self):
        args = make_peano_opt_args("in.ll", "out.ll", '"-time-passes -debug-pass=Structure"')
        assert args[: len(DEFAULTS)] == DEFAULTS
        assert args[len(DEFAULTS):] == ["-time-passes", "-debug-pass=Structure"]

    def test_mixed_flags(self):
        args = make_peano_opt_args("in.ll", "out.ll", '"-O1   -time-passes"')
        assert args[DEFAULTS.index("-O3")] == "-O1"
        assert args[-1] == "-time-passes"

    def test_last_opt_level_wins(self):
        args = make_peano_opt_args("in.ll", "out.ll", '"-O2 -O0"')
        assert args[DEFAULTS.index("-O3")] == "-O0"
        assert "-O2" not in args


class TestMalformedFlags:
    @pytest.mark.parametrize(
        "flags",
        ["-O2", '"-O2', '-O2"', '"', "'-O2'", " \"-O2\""],
    )
    def test_unquoted_flags_rejected(self, flags):
        with pytest.raises(MalformedFlagStringError):
            make_peano_opt_args("in.ll", "out.ll", flags)

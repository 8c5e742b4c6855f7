#!/usr/bin/env python

"""Tests of the BAM/FASTA/BED readers and the command line tool.

A small reference and two BAM files are written to a tmp directory:

ref chr1   ACGTACGTACGTACGTACGT
sA (RG)      GTACGTACGTAC         x3, read group SM=sA
sB (stem)      ACTTACGT           x2, no read group; T at pos 6 (ref G)

- test_every_position_is_returned
- test_alleles_at_variant_position
- test_min_base_quality
- test_missing_alignment_is_fatal
- test_empty_sample_names_fall_back
- test_missing_sample_rejects_calls_only
- test_load_targets
- test_params_json_round_trip
- test_cli_call
- test_cli_call_from_params_file
- test_cli_missing_input_exits
"""

import io
import json
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
import pysam
from bayescall.core.allele import AlleleType
from bayescall.core.caller import Caller
from bayescall.core.exceptions import BayesCallError
from bayescall.io.pileup import AlleleReader
from bayescall.io.regions import Target, load_targets, targets_from_reference
from bayescall.core.logger_setup import capture_logs
from bayescall.schema.params_schema import Params, load_params, save_params
from bayescall.__main__ import main

REFSEQ = "ACGTACGTACGTACGTACGT"


def write_bam(path: Path, reads, read_group=None):
    """Write a sorted, indexed BAM of (start, seq, qual) reads on chr1."""
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": "chr1", "LN": len(REFSEQ)}],
    }
    if read_group:
        header["RG"] = [{"ID": "rg0", "SM": read_group}]
    with pysam.AlignmentFile(str(path), "wb", header=header) as out:
        for idx, (start, seq, qual) in enumerate(sorted(reads)):
            read = pysam.AlignedSegment(out.header)
            read.query_name = f"read{idx}"
            read.query_sequence = seq
            read.flag = 0
            read.reference_id = 0
            read.reference_start = start
            read.mapping_quality = 60
            read.cigartuples = [(0, len(seq))]
            read.query_qualities = pysam.qualitystring_to_array(qual)
            if read_group:
                read.set_tag("RG", "rg0")
            out.write(read)
    pysam.index(str(path))


class BamFixture(unittest.TestCase):
    """Writes the reference, targets and BAM files."""

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp(prefix="bayescall-tests-"))
        self.fasta = self.tmpdir / "ref.fa"
        self.fasta.write_text(f">chr1\n{REFSEQ}\n")
        self.bed = self.tmpdir / "targets.bed"
        self.bed.write_text("track name=test\nchr1\t0\t12\n")

        self.bam1 = self.tmpdir / "lane1.bam"
        write_bam(self.bam1, [(2, REFSEQ[2:14], "I" * 12)] * 3, read_group="sA")
        self.bam2 = self.tmpdir / "sB.sorted.bam"
        seq = REFSEQ[4:6] + "T" + REFSEQ[7:12]
        write_bam(self.bam2, [(4, seq, "I" * 6 + "+" * 2)] * 2)

        self.params = Params(
            alignment_files=[self.bam1, self.bam2],
            reference_sequence=self.fasta,
            targets=self.bed,
        )

    def tearDown(self):
        shutil.rmtree(self.tmpdir)


class TestAlleleReader(BamFixture):

    def test_samples_from_headers(self):
        with AlleleReader(self.params) as reader:
            self.assertEqual(reader.samples, ["sA", "sB"])

    def test_every_position_is_returned(self):
        with AlleleReader(self.params) as reader:
            positions = list(reader)
        self.assertEqual([i[1] for i in positions], list(range(12)))
        self.assertTrue(all(i[0] == "chr1" for i in positions))
        self.assertEqual(positions[0][2], [])
        self.assertEqual(positions[1][2], [])
        self.assertEqual(len(positions[2][2]), 3)
        self.assertEqual(len(positions[11][2]), 5)

    def test_get_next_position_end(self):
        with AlleleReader(self.params, targets=[Target("chr1", 3, 5)]) as reader:
            self.assertEqual(reader.get_next_position()[1], 3)
            self.assertEqual(reader.get_next_position()[1], 4)
            self.assertIsNone(reader.get_next_position())
            self.assertIsNone(reader.get_next_position())

    def test_alleles_at_variant_position(self):
        with AlleleReader(self.params, targets=[Target("chr1", 6, 7)]) as reader:
            target, pos, alleles = reader.get_next_position()
        self.assertEqual((target, pos), ("chr1", 6))
        kinds = sorted((i.sample_id, i.kind, i.sequence) for i in alleles)
        self.assertEqual(kinds, [
            ("sA", AlleleType.REFERENCE, ""),
            ("sA", AlleleType.REFERENCE, ""),
            ("sA", AlleleType.REFERENCE, ""),
            ("sB", AlleleType.SNP, "T"),
            ("sB", AlleleType.SNP, "T"),
        ])
        self.assertTrue(all(i.quality == 40 for i in alleles))

    def test_min_base_quality(self):
        """The last two bases of sB reads are Q10."""
        self.params.min_base_quality = 20
        with AlleleReader(self.params, targets=[Target("chr1", 11, 12)]) as reader:
            _, _, alleles = reader.get_next_position()
        self.assertEqual({i.sample_id for i in alleles}, {"sA"})

    def test_target_past_reference_end(self):
        with AlleleReader(self.params, targets=[Target("chr1", 18, 30)]) as reader:
            positions = list(reader)
        self.assertEqual([i[1] for i in positions], [18, 19])

    def test_caller_on_reader(self):
        with AlleleReader(self.params) as reader:
            caller = Caller(self.params, reader)
            results = list(caller.iter_results())
        self.assertEqual(len(results), 10)
        variant = [i for i in results if i.position == "7"][0]
        b_gts = variant.samples["sB"].genotypes
        a_gts = variant.samples["sA"].genotypes
        self.assertEqual(max(b_gts, key=b_gts.get), "T/T")
        self.assertEqual(max(a_gts, key=a_gts.get), "R/R")
        self.assertEqual(variant.samples["sA"].coverage, 3)

    def test_missing_alignment_is_fatal(self):
        params = Params(reference_sequence=self.fasta)
        with self.assertRaises(BayesCallError):
            AlleleReader(params)
        with self.assertRaises(ValueError):
            params.alignment_files = [self.tmpdir / "missing.bam"]
        params.alignment_files = [self.bam2]
        params.reference_sequence = None
        with self.assertRaises(BayesCallError):
            AlleleReader(params)

    def test_empty_sample_names_fall_back(self):
        hidden = self.tmpdir / ".hidden.bam"
        write_bam(hidden, [(4, REFSEQ[4:8], "IIII")])
        self.params.alignment_files = [self.bam1, hidden]
        with AlleleReader(self.params, targets=[Target("chr1", 5, 6)]) as reader:
            self.assertEqual(reader.samples, [".hidden.bam", "sA"])
            _, _, alleles = reader.get_next_position()
        self.assertEqual(
            sorted({i.sample_id for i in alleles}), [".hidden.bam", "sA"])

    def test_missing_sample_rejects_calls_only(self):
        with AlleleReader(self.params, targets=[Target("chr1", 6, 8)]) as reader:
            reader.default_samples[1] = ""
            with capture_logs("WARNING") as cap:
                positions = list(reader)
        self.assertEqual(len(positions), 2)
        for _, _, alleles in positions:
            self.assertEqual({i.sample_id for i in alleles}, {"sA"})
            self.assertEqual(len(alleles), 3)
        self.assertEqual(sum("rejected base call" in i for i in cap), 4)

    def test_load_targets(self):
        targets = load_targets(self.bed)
        self.assertEqual(targets, [Target("chr1", 0, 12)])
        self.assertEqual(len(targets[0]), 12)
        self.assertEqual(targets_from_reference(self.fasta), [Target("chr1", 0, 20)])

    def test_bad_targets(self):
        bad = self.tmpdir / "bad.bed"
        bad.write_text("chr1\tzero\t10\n")
        with self.assertRaises(BayesCallError):
            load_targets(bad)
        with self.assertRaises(BayesCallError):
            load_targets(self.tmpdir / "missing.bed")


class TestParams(BamFixture):

    def test_params_json_round_trip(self):
        self.params.ploidy = 3
        self.params.joint_prior = True
        pfile = self.tmpdir / "params.json"
        save_params(self.params, pfile)
        loaded = load_params(pfile)
        self.assertEqual(loaded.model_dump(), self.params.model_dump())
        self.assertEqual(loaded.alignment_files, [self.bam1.resolve(), self.bam2.resolve()])
        self.assertTrue(all(isinstance(i, Path) for i in loaded.alignment_files))

    def test_single_alignment_path(self):
        params = Params(alignment_files=str(self.bam1))
        self.assertEqual(params.alignment_files, [self.bam1.resolve()])

    def test_bad_params_file(self):
        pfile = self.tmpdir / "params.json"
        pfile.write_text('{"ploidy": 0}')
        with self.assertRaises(BayesCallError):
            load_params(pfile)


class TestCommandLine(BamFixture):

    def test_cli_call(self):
        out = self.tmpdir / "calls.jsonl"
        with self.assertRaises(SystemExit) as cm:
            main([
                "call",
                "-b", str(self.bam1), str(self.bam2),
                "-f", str(self.fasta),
                "-t", str(self.bed),
                "-o", str(out),
                "--logger", "WARNING",
            ])
        self.assertEqual(cm.exception.code, 0)
        lines = out.read_text().splitlines()
        self.assertEqual(len(lines), 10)
        first = json.loads(lines[0])
        self.assertEqual(first["sequence"], "chr1")
        self.assertEqual(first["position"], "3")
        self.assertEqual(first["samples"]["sA"]["coverage"], 3)
        self.assertEqual(len(first["samples"]["sA"]["genotypes"]), 15)

    def test_cli_call_from_params_file(self):
        pfile = self.tmpdir / "params.json"
        save_params(self.params, pfile)
        out = self.tmpdir / "calls.jsonl"
        with self.assertRaises(SystemExit) as cm:
            main(["call", "-p", str(pfile), "-o", str(out), "--logger", "WARNING"])
        self.assertEqual(cm.exception.code, 0)
        self.assertEqual(len(out.read_text().splitlines()), 10)

    def test_cli_params_file(self):
        pfile = self.tmpdir / "params.json"
        pfile.write_text(self.params.model_dump_json())
        stdout = io.StringIO()
        with redirect_stdout(stdout), self.assertRaises(SystemExit) as cm:
            main(["params", "-p", str(pfile), "--ploidy", "1", "--logger", "WARNING"])
        self.assertEqual(cm.exception.code, 0)
        shown = json.loads(stdout.getvalue())
        self.assertEqual(shown["ploidy"], 1)
        self.assertEqual(Path(shown["reference_sequence"]), self.fasta.resolve())

    def test_cli_missing_input_exits(self):
        with self.assertRaises(SystemExit) as cm:
            main([
                "call",
                "-b", str(self.tmpdir / "missing.bam"),
                "-f", str(self.fasta),
                "--logger", "CRITICAL",
            ])
        self.assertEqual(cm.exception.code, 1)


if __name__ == "__main__":
    unittest.main()

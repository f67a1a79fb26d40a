"""Tests for the content classification cascade."""

import gzip
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from cryptguard.classifier import (
    METHOD_MARKER,
    METHOD_RATIO,
    METHOD_TYPE,
    ContentClassifier,
    builtin_sniffer,
    classify,
    file_command_sniffer,
    resolve_sniffer,
)
from cryptguard.markers import Marker

from conftest import PLAINTEXT_YAML, SOPS_YAML, VAULT_YAML, aes_ciphertext, ascii_sniffer


@pytest.fixture
def classifier():
    """Classifier whose type sniff always reports plain text."""
    return ContentClassifier(sniffer=ascii_sniffer)


class TestTypeSniff:
    """Tests for the content-type step."""

    @pytest.mark.parametrize("reported", [
        "data",
        "gzip compressed data, was \"secrets.yaml\"",
        "GPG symmetrically ENCRYPTED data (AES256 cipher)",
        "Binary file",
        "XZ compressed",
        "JSON text data",
    ])
    def test_keywords_classify_encrypted(self, reported):
        is_encrypted, evidence = ContentClassifier(sniffer=lambda d: reported).classify(b"x: 1\n")

        assert is_encrypted
        assert evidence.method == METHOD_TYPE
        assert evidence.reported_type == reported

    def test_type_hit_skips_later_methods(self):
        classifier = ContentClassifier(sniffer=lambda d: "data")

        _, evidence = classifier.classify(SOPS_YAML)

        assert evidence.marker_hits == []
        assert evidence.printable_ratio is None

    def test_sniffer_failure_falls_through(self):
        def broken(data):
            raise OSError("file: command not found")

        is_encrypted, evidence = ContentClassifier(sniffer=broken).classify(SOPS_YAML)

        assert is_encrypted
        assert evidence.reported_type == "unknown"
        assert evidence.method == METHOD_MARKER

    def test_sniffer_process_error_falls_through(self):
        def broken(data):
            raise subprocess.CalledProcessError(1, ["file", "-b", "-"])

        is_encrypted, evidence = ContentClassifier(sniffer=broken).classify(PLAINTEXT_YAML)

        assert not is_encrypted
        assert evidence.reported_type == "unknown"

    def test_no_sniffer(self):
        _, evidence = ContentClassifier(sniffer=None).classify(PLAINTEXT_YAML)
        assert evidence.reported_type == "unknown"

    def test_compressed_plaintext_counts_as_encrypted(self):
        is_encrypted, evidence = classify(gzip.compress(PLAINTEXT_YAML))

        assert is_encrypted
        assert evidence.reported_type == "gzip compressed data"


class TestMarkers:
    """Tests for the marker scan step."""

    def test_ansible_vault_with_fully_printable_content(self, classifier):
        is_encrypted, evidence = classifier.classify(VAULT_YAML)

        assert is_encrypted
        assert evidence.method == METHOD_MARKER
        assert evidence.marker == "ansible-vault"
        assert evidence.printable_ratio is None

    def test_all_hits_reported_in_marker_order(self, classifier):
        _, evidence = classifier.classify(SOPS_YAML)

        assert evidence.marker_hits == ["sops", "age", "enc-value"]
        assert evidence.marker == "sops"

    @pytest.mark.parametrize("content, marker", [
        (b"ansible-vault:1.2\nabc\n", "ansible-vault-alt"),
        (b"token: abc\npgp: []\n", "pgp"),
        (b"-----BEGIN ENCRYPTED MESSAGE-----\nxyz\n", "encrypted-message"),
        (b"key: ENC[PKCS7,MIIBeQYJKoZIhvcNAQcDoIIBajCCAWYCAQAxggEhMIIBHQIBADAFMAACAQEw]\n", "enc-value"),
        (b"\x00GITCRYPT\x00" + b"a" * 64, "git-crypt"),
    ])
    def test_single_markers(self, classifier, content, marker):
        is_encrypted, evidence = classifier.classify(content)

        assert is_encrypted
        assert evidence.marker == marker

    def test_pgp_armor_reports_generic_message_marker_first(self, classifier):
        _, evidence = classifier.classify(b"-----BEGIN PGP MESSAGE-----\nhQEMA\n-----END PGP MESSAGE-----\n")
        assert evidence.marker_hits == ["encrypted-message", "pgp-armor"]

    def test_line_prefix_markers_need_line_start(self, classifier):
        is_encrypted, _ = classifier.classify(b"note: run ansible-vault later\n")
        assert not is_encrypted

    def test_line_prefix_marker_on_later_line(self, classifier):
        is_encrypted, evidence = classifier.classify(b"# encrypted below\n$ANSIBLE_VAULT;1.1;AES256\n6162\n")

        assert is_encrypted
        assert evidence.marker == "ansible-vault"

    def test_custom_marker_list(self):
        classifier = ContentClassifier(
            sniffer=ascii_sniffer,
            markers=[Marker("vault-transit", "substring", ("vault:v1:",))],
        )

        assert classifier.classify(b"password: vault:v1:8SDd3WHDOjf7mq69\n")[0]
        assert not classifier.classify(b"sops:\n  version: 3\n")[0]


class TestPrintableRatio:
    """Tests for the printable-ratio fallback."""

    def test_ciphertext_reported_as_text_still_encrypted(self, classifier):
        is_encrypted, evidence = classifier.classify(aes_ciphertext())

        assert is_encrypted
        assert evidence.method == METHOD_RATIO
        assert evidence.printable_ratio < 80

    def test_plaintext_default(self, classifier):
        is_encrypted, evidence = classifier.classify(b"foo: bar\n")

        assert not is_encrypted
        assert evidence.method is None
        assert evidence.printable_ratio == 100
        assert evidence.marker_hits == []

    def test_threshold_is_exclusive(self, classifier):
        at_threshold = b"a" * 800 + b"\x00" * 200
        below_threshold = b"a" * 799 + b"\x00" * 201

        assert not classifier.classify(at_threshold)[0]
        assert classifier.classify(at_threshold)[1].printable_ratio == 80
        assert classifier.classify(below_threshold)[0]
        assert classifier.classify(below_threshold)[1].printable_ratio == 79

    def test_only_probe_is_sampled(self, classifier):
        data = b"a" * 1000 + b"\x00" * 5000

        assert not classifier.classify(data)[0]
        assert classifier.classify(data, probe_limit=6000)[0]

    def test_whitespace_counts_as_printable(self, classifier):
        _, evidence = classifier.classify(b"a\tb\r\n\x0b\x0c")
        assert evidence.printable_ratio == 100

    def test_custom_threshold(self):
        classifier = ContentClassifier(sniffer=ascii_sniffer, printable_threshold=95)
        assert classifier.classify(b"a" * 90 + b"\x00" * 10)[0]

    def test_empty_content_abstains(self, classifier):
        is_encrypted, evidence = classifier.classify(b"")

        assert not is_encrypted
        assert evidence.printable_ratio is None
        assert evidence.method is None


class TestIdempotence:
    """Classification has no hidden state."""

    @pytest.mark.parametrize("content", [b"foo: bar\n", VAULT_YAML, b"", b"\x00\x01\x02" * 50])
    def test_same_content_same_result(self, classifier, content):
        assert classifier.classify(content) == classifier.classify(content)


class TestEvidence:
    """Tests for evidence descriptions."""

    def test_describe(self, classifier):
        assert classifier.classify(VAULT_YAML)[1].describe() == "ansible-vault marker detected"
        assert "printable ratio 100%" in classifier.classify(b"foo: bar\n")[1].describe()
        assert "empty content" in classifier.classify(b"")[1].describe()

    def test_to_dict(self, classifier):
        assert classifier.classify(b"foo: bar\n")[1].to_dict() == {
            "reported_type": "ASCII text",
            "marker_hits": [],
            "printable_ratio": 100,
            "method": None,
        }


class TestBuiltinSniffer:
    """Tests for the magic-byte sniffer."""

    @pytest.mark.parametrize("content, expected", [
        (b"", "empty"),
        (b"foo: bar\n", "ASCII text"),
        ("café: ok\n".encode("utf-8"), "UTF-8 Unicode text"),
        (b"caf\xe9: ok\n", "ISO-8859 text"),
        (b"\x00\x01\x02\x03", "data"),
        (b"\x00GITCRYPT\x00\x12\x34", "git-crypt encrypted data"),
        (b"age-encryption.org/v1\n-> X25519 abc\n", "age encrypted file"),
        (b"BZh91AY&SY", "bzip2 compressed data"),
    ])
    def test_descriptors(self, content, expected):
        assert builtin_sniffer(content) == expected

    def test_gzip(self):
        assert builtin_sniffer(gzip.compress(b"hello")) == "gzip compressed data"


class TestFileCommandSniffer:
    """Tests for the `file` utility wrapper."""

    def test_runs_file_on_stdin(self):
        completed = MagicMock(stdout=b"ASCII text\n")

        with patch("cryptguard.classifier.subprocess.run", return_value=completed) as run:
            assert file_command_sniffer(b"foo: bar\n") == "ASCII text"

        args, kwargs = run.call_args
        assert args[0] == ["file", "-b", "-"]
        assert kwargs["input"] == b"foo: bar\n"
        assert kwargs["check"] is True


class TestResolveSniffer:
    """Tests for sniffer selection."""

    def test_named(self):
        assert resolve_sniffer("builtin") is builtin_sniffer
        assert resolve_sniffer("file") is file_command_sniffer
        assert resolve_sniffer("none") is None

    def test_auto_prefers_file(self):
        with patch("cryptguard.classifier.shutil.which", return_value="/usr/bin/file"):
            assert resolve_sniffer("auto") is file_command_sniffer

    def test_auto_falls_back_to_builtin(self):
        with patch("cryptguard.classifier.shutil.which", return_value=None):
            assert resolve_sniffer("auto") is builtin_sniffer

    def test_unknown(self):
        with pytest.raises(ValueError):
            resolve_sniffer("libmagic")

"""
Command-line interface for the cryptguard tool.

This module orchestrates all other components and provides
the user-facing CLI commands:
- check
- explain
- rules
- help
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import (
    SUPPORTED_MODES,
    SUPPORTED_SNIFFERS,
    TOOL_VERSION,
    MODE_DIRECTORY,
    get_settings_path,
    get_sniffer_override,
)
from .classifier import ContentClassifier
from .file_scanner import FileScanner
from .guard import FileResult, Report, Verdict, check_file, check_files
from .rules import PolicyMatcher
from .settings import Settings
from .utils import normalize_path


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message."""
    print(colored(f"✓ {msg}", Colors.GREEN))


def print_warning(msg: str) -> None:
    """Print warning message."""
    print(colored(f"⚠ Warning: {msg}", Colors.YELLOW))


def print_info(msg: str) -> None:
    """Print info message."""
    print(colored(f"ℹ {msg}", Colors.CYAN))


REMEDIATION = """\
How to fix:
1. Encrypt the files using your preferred method:
   - Ansible Vault: ansible-vault encrypt <file>
   - SOPS: sops -e <file>
   - Git-crypt: git-crypt add <file>
   - GPG: gpg -c <file>
2. Commit the encrypted files
3. Or update {rules_file} if the file shouldn't be encrypted
4. Or use --no-verify to skip this check (NOT RECOMMENDED)"""


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(self, args: argparse.Namespace):
        self.args = args
        self.root = Path(args.root)
        if args.config:
            self.config_path = Path(args.config)
        else:
            self.config_path = self.root / get_settings_path()
        self.config_required = args.config is not None
        self.verbose = args.verbose
        self.quiet = args.quiet

        # Lazy-loaded
        self._settings: Optional[Settings] = None
        self._matcher: Optional[PolicyMatcher] = None
        self._classifier: Optional[ContentClassifier] = None

    @property
    def settings(self) -> Settings:
        """Load settings lazily, applying CLI and environment overrides."""
        if self._settings is None:
            settings = Settings.load(self.config_path, required=self.config_required)
            self._settings = settings.with_overrides(
                rules_file=self.args.rules_file,
                mode=self.args.mode,
                secret_dir=self.args.secret_dir,
                extensions=Settings.parse_extensions(self.args.extensions) if self.args.extensions else None,
                sniffer=self.args.sniffer or get_sniffer_override(),
            )
        return self._settings

    @property
    def matcher(self) -> PolicyMatcher:
        """Read the rules file once per invocation."""
        if self._matcher is None:
            self._matcher = self.settings.build_matcher(self.root)
        return self._matcher

    @property
    def classifier(self) -> ContentClassifier:
        if self._classifier is None:
            self._classifier = self.settings.build_classifier()
        return self._classifier

    @property
    def scanner(self) -> FileScanner:
        return FileScanner(
            self.root,
            secret_dir=self.settings.effective_secret_dir,
            extensions=self.settings.extensions,
        )

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg)

    def log_verbose(self, msg: str) -> None:
        """Log message if verbose."""
        if self.verbose:
            print(colored(f"  → {msg}", Colors.BLUE))

    def warn_missing_rules(self) -> None:
        if not self.matcher.rules_file_found:
            print_warning(
                f"{self.settings.rules_file} file not found; no files are marked for encryption"
            )


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def _print_result(ctx: CLIContext, result: FileResult) -> None:
    if result.skipped:
        print_warning(f"Skipping unreadable file: {result.path}")
        return

    if result.verdict is Verdict.UNGOVERNED:
        ctx.log_verbose(f"{result.path}: not marked for encryption")
        return

    ctx.log(colored(f"\n📄 Checking: {result.path}", Colors.BLUE))
    ctx.log(f"   Matched pattern: {result.rule}")
    ctx.log(f"   File type: {result.evidence.reported_type}")
    if result.evidence.printable_ratio is not None:
        ctx.log_verbose(f"Printable character ratio: {result.evidence.printable_ratio}%")

    if result.verdict is Verdict.GOVERNED_AND_ENCRYPTED:
        ctx.log(colored(f"   ✓ ENCRYPTED: {result.evidence.describe()}", Colors.GREEN))
    else:
        ctx.log(colored(f"   ✗ NOT ENCRYPTED: {result.evidence.describe()}", Colors.RED))


def _print_summary(ctx: CLIContext, report: Report) -> None:
    ctx.log(colored("\n=== Encryption Check Results ===", Colors.BLUE))
    ctx.log(f"Files processed: {report.governed_count}")
    ctx.log(f"Encrypted:       {colored(str(len(report.encrypted)), Colors.GREEN)}")
    ctx.log(f"Unencrypted:     {colored(str(len(report.violations)), Colors.RED)}")
    if report.skipped:
        ctx.log(f"Skipped:         {colored(str(len(report.skipped)), Colors.YELLOW)}")

    # Printed even in quiet mode
    if not report.passed:
        print(colored("\n✗ COMMIT BLOCKED: Found unencrypted files that should be encrypted", Colors.RED))
        print(colored("The following files need to be encrypted:", Colors.YELLOW))
        for path in report.violating_paths:
            print(f"  - {colored(path, Colors.RED)}")
        print("")
        print(REMEDIATION.format(rules_file=ctx.settings.rules_file))
    elif report.governed_count == 0:
        print_info("No files marked for encryption to check")
    else:
        print_success("All files marked for encryption are properly encrypted!")


def cmd_check(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Verify that every governed candidate is encrypted.
    """
    scanner = ctx.scanner

    if args.all:
        ctx.log_verbose(f"Scanning directory: {ctx.root}")
        candidates = list(scanner.scan())
    elif args.staged or not args.paths:
        ctx.log_verbose("Checking files staged for commit")
        candidates = list(scanner.staged())
    else:
        candidates = list(scanner.filter(args.paths))

    if not args.json:
        ctx.log(colored("🔍 Checking encryption of protected files...", Colors.BOLD))
        if ctx.settings.mode != MODE_DIRECTORY:
            ctx.warn_missing_rules()

    report = check_files(candidates, ctx.matcher, ctx.classifier, ctx.root)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return report.exit_code

    for result in report.results:
        _print_result(ctx, result)
    _print_summary(ctx, report)

    return report.exit_code


def cmd_explain(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Explain why a file is or is not governed, and how its content classifies.
    """
    settings = ctx.settings
    path = args.path

    ctx.log(colored(f"\n{'='*60}", Colors.CYAN))
    ctx.log(colored("Encryption Evaluation", Colors.BOLD))
    ctx.log(colored(f"{'='*60}\n", Colors.CYAN))

    candidate = ctx.scanner.accepts(normalize_path(path))
    ctx.log(f"{colored('File:', Colors.BOLD)} {path}")
    ctx.log(f"{colored('Mode:', Colors.BOLD)} {settings.mode}")
    ctx.log(f"{colored('Settings:', Colors.BOLD)} {settings.source or 'defaults'}")
    ctx.log(f"{colored('Candidate:', Colors.BOLD)} {colored('Yes', Colors.GREEN) if candidate else colored('No (filtered out)', Colors.YELLOW)}")

    if settings.mode != MODE_DIRECTORY:
        ctx.warn_missing_rules()

    result = check_file(path, ctx.matcher, ctx.classifier, ctx.root)

    ctx.log(colored("\nGovernance:", Colors.CYAN))
    if result.verdict is Verdict.UNGOVERNED:
        ctx.log(colored("  ✗ NOT MATCHED by any encryption rule", Colors.YELLOW))
        ctx.log(colored(f"\n{'='*60}\n", Colors.CYAN))
        return 0

    rule = result.rule
    location = f" (line {rule.line_number})" if rule.line_number else ""
    ctx.log(colored(f"  ✓ MATCHED{location}", Colors.GREEN))
    ctx.log(f"  Pattern:    {rule.pattern}")
    ctx.log(f"  Directive:  {rule.directive}")

    ctx.log(colored("\nContent:", Colors.CYAN))
    if result.skipped:
        ctx.log(colored(f"  ⚠ {result.message}", Colors.YELLOW))
    else:
        evidence = result.evidence
        ctx.log(f"  File type:       {evidence.reported_type}")
        ctx.log(f"  Markers:         {', '.join(evidence.marker_hits) or 'none'}")
        descriptions = {m.name: m.description for m in ctx.classifier.markers}
        for name in evidence.marker_hits:
            if descriptions.get(name):
                ctx.log(f"    {name}: {descriptions[name]}")
        ratio = "not evaluated" if evidence.printable_ratio is None else f"{evidence.printable_ratio}%"
        ctx.log(f"  Printable ratio: {ratio}")
        color = Colors.GREEN if result.verdict is Verdict.GOVERNED_AND_ENCRYPTED else Colors.RED
        ctx.log(colored(f"  Result:          {result.message}", color))

    ctx.log(colored(f"\n{'='*60}\n", Colors.CYAN))
    return 0


def cmd_rules(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    List the encryption rules in evaluation order.
    """
    settings = ctx.settings
    matcher = ctx.matcher

    if settings.mode == MODE_DIRECTORY:
        ctx.log(colored(f"Directory policy: every file under {settings.effective_secret_dir}/", Colors.BOLD))
    else:
        ctx.log(colored(f"Encryption rules from {settings.rules_file}", Colors.BOLD))
        ctx.warn_missing_rules()
    ctx.log(f"Settings: {settings.source or 'defaults'}")
    ctx.log("")

    if not matcher.rules:
        ctx.log(colored("No encryption rules", Colors.YELLOW))
        return 0

    candidates: List[str] = list(ctx.scanner.scan()) if ctx.verbose else []

    for idx, rule in enumerate(matcher.rules):
        location = f" (line {rule.line_number})" if rule.line_number else ""
        ctx.log(colored(f"Rule {idx}{location}:", Colors.CYAN))
        ctx.log(f"  Pattern:    {rule.pattern}")
        ctx.log(f"  Directive:  {rule.directive}")

        if ctx.verbose:
            single = PolicyMatcher([rule])
            matches = sum(1 for path in candidates if single.match(path).governed)
            ctx.log(f"  Matches:    {matches} file(s)")

        ctx.log("")

    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('cryptguard', Colors.BOLD)} — block commits of secrets that should be encrypted

{colored('USAGE:', Colors.CYAN)}
  cryptguard [options] <command> [paths...]

{colored('DESCRIPTION:', Colors.CYAN)}
  cryptguard is a pre-commit check. Files matched by an encryption rule
  in .gitattributes (filter=, git-crypt, sops, ansible-vault, encrypt)
  must hold ciphertext; any plaintext match blocks the commit.

{colored('COMMANDS:', Colors.CYAN)}
  check       Check candidate files (default: files staged for commit)
  explain     Explain how a single file is evaluated
  rules       List encryption rules in evaluation order
  help        Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -c, --config PATH         Settings file (default: .cryptguard.yml)
  -C, --root PATH           Repository root (default: current directory)
  --rules-file PATH         Rules file (default: .gitattributes)
  --mode MODE               attributes | directory
  --secret-dir DIR          Only consider files under DIR
  --ext EXT                 Only consider files with EXT (repeatable)
  --sniffer NAME            auto | file | builtin | none
  -v, --verbose             Enable verbose output
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('CHECK OPTIONS:', Colors.CYAN)}
  --staged                  Check files staged for commit
  --all                     Check every file in the tree
  --json                    Print the report as JSON

{colored('ENVIRONMENT:', Colors.CYAN)}
  CRYPTGUARD_CONFIG         Settings file location
  CRYPTGUARD_SNIFFER        Force a content sniffer

{colored('EXAMPLES:', Colors.CYAN)}
  cryptguard check
  cryptguard check secret/db.yaml secret/api.yaml
  cryptguard --mode directory --secret-dir secret --ext .yaml --ext .yml check
  cryptguard explain secret/db.yaml
  cryptguard rules -v

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cryptguard",
        description="Block commits of files that should be encrypted",
        add_help=False,
    )

    # Global options
    parser.add_argument("-c", "--config", default=None, help="Path to settings file")
    parser.add_argument("-C", "--root", default=".", help="Repository root")
    parser.add_argument("--rules-file", default=None, help="Path to rules file")
    parser.add_argument("--mode", choices=SUPPORTED_MODES, default=None, help="Policy mode")
    parser.add_argument("--secret-dir", default=None, help="Only consider files under this directory")
    parser.add_argument(
        "--ext",
        dest="extensions",
        action="append",
        default=None,
        help="Only consider files with this extension",
    )
    parser.add_argument("--sniffer", choices=SUPPORTED_SNIFFERS, default=None, help="Content sniffer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress non-error output")
    parser.add_argument("-h", "--help", action="store_true", help="Show help message")

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    check_parser = subparsers.add_parser("check", help="Check candidate files")
    check_parser.add_argument("paths", nargs="*", help="Files to check")
    source = check_parser.add_mutually_exclusive_group()
    source.add_argument("--staged", action="store_true", help="Check files staged for commit")
    source.add_argument("--all", action="store_true", help="Check every file in the tree")
    check_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    explain_parser = subparsers.add_parser("explain", help="Explain evaluation of a file")
    explain_parser.add_argument("path", help="File path to explain")

    subparsers.add_parser("rules", help="List encryption rules")
    subparsers.add_parser("help", help="Show help message")

    return parser


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    _configure_logging(args.verbose, args.quiet)
    ctx = CLIContext(args)

    # Dispatch to command
    commands = {
        "check": cmd_check,
        "explain": cmd_explain,
        "rules": cmd_rules,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return 1

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except RuntimeError as e:
        print_error(str(e))
        return 1
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from paybuilder.config import BuilderSettings
from paybuilder.exceptions import PaymentBuilderError
from paybuilder.integrations.pydantic import dump_instructions
from paybuilder.observability import configure_logging
from paybuilder.parser import ErrorPolicy
from paybuilder.service import BatchProcessor
from paybuilder.validator import Validator


def handle_parse(args, settings: BuilderSettings):
    """Handles the 'parse' subcommand: Outputs the normalized records as JSON."""
    try:
        result = BatchProcessor(settings).read_file(Path(args.file))
        print(dump_instructions(result.instructions))
    except (PaymentBuilderError, OSError, UnicodeDecodeError) as e:
        print(f"Error parsing file: {e}", file=sys.stderr)
        sys.exit(1)


def handle_generate(args, settings: BuilderSettings):
    """Handles the 'generate' subcommand: Compiles one file into a pain.013 document."""
    try:
        processor = BatchProcessor(settings)
        result = processor.read_file(Path(args.file))
        if not result.instructions:
            print(f"No records found in file: {args.file}", file=sys.stderr)
            return

        xml_content = processor.writer.to_xml(result.instructions)
        if args.output:
            Path(args.output).write_text(xml_content, encoding="utf-8")
            print(f"Generated payment message: {args.output}")
        else:
            print(xml_content)
    except (PaymentBuilderError, OSError, UnicodeDecodeError) as e:
        print(f"Error generating message: {e}", file=sys.stderr)
        sys.exit(1)


def handle_validate(args, settings: BuilderSettings):
    """Handles the 'validate' subcommand: Parse strictly, then run the advisory checks."""
    try:
        result = BatchProcessor(settings).read_file(Path(args.file))
    except (PaymentBuilderError, OSError, UnicodeDecodeError) as e:
        print(f"Parsing Failed: {e}", file=sys.stderr)
        sys.exit(1)

    report = Validator.validate_batch(result.instructions)
    if not report.is_valid:
        print("Parsed OK, but Data Validation Failed:")
        for err in report.errors:
            print(f"  - {err}")
        sys.exit(1)

    print(f"Validation Successful: {len(result.instructions)} record(s) checked.")


def handle_run(args, settings: BuilderSettings):
    """Handles the 'run' subcommand: Converts every CSV file of the input directory."""
    settings = settings.override(input_directory=args.input_dir, output_directory=args.output_dir)
    processed = BatchProcessor(settings).process_input_files()
    print(f"Processing complete. {processed} file(s) processed successfully.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="paybuilder",
        description="paybuilder CLI - Convert delimited payment files into ISO 20022 pain.013 messages.",
    )
    parser.add_argument("--separator", help="Field separator of the input files (default ',').")
    parser.add_argument("--encoding", help="Text encoding of the input files (default utf-8).")
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Skip malformed rows instead of failing the whole file.",
    )
    parser.add_argument("--log-level", help="Logging level (e.g. DEBUG, INFO).")
    parser.add_argument("--log-format", choices=["text", "json"], help="Log output format.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Subcommand: parse
    parse_parser = subparsers.add_parser("parse", help="Parse a file and output the records as JSON.")
    parse_parser.add_argument("file", help="Path to the delimited payment file.")
    parse_parser.set_defaults(func=handle_parse)

    # Subcommand: generate
    generate_parser = subparsers.add_parser("generate", help="Generate a pain.013 document from a file.")
    generate_parser.add_argument("file", help="Path to the delimited payment file.")
    generate_parser.add_argument("-o", "--output", help="Write the XML here instead of stdout.")
    generate_parser.set_defaults(func=handle_generate)

    # Subcommand: validate
    validate_parser = subparsers.add_parser("validate", help="Check BIC, IBAN, currency and country formats.")
    validate_parser.add_argument("file", help="Path to the file to validate.")
    validate_parser.set_defaults(func=handle_validate)

    # Subcommand: run
    run_parser = subparsers.add_parser("run", help="Convert every CSV file of a directory.")
    run_parser.add_argument("--input-dir", help="Directory to scan (default from PAYMENT_BUILDER_INPUT_DIR).")
    run_parser.add_argument("--output-dir", help="Directory for XML output (default from PAYMENT_BUILDER_OUTPUT_DIR).")
    run_parser.set_defaults(func=handle_run)

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = BuilderSettings.from_env().override(
            separator=args.separator,
            encoding=args.encoding,
            error_policy=ErrorPolicy.SKIP if args.lenient else None,
            log_level=args.log_level,
            log_format=args.log_format,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    configure_logging(settings.log_level, settings.log_format)
    args.func(args, settings)


if __name__ == "__main__":
    main()

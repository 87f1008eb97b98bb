import logging
from pathlib import Path
from typing import List, Optional

from paybuilder.config import BuilderSettings
from paybuilder.models import ParseResult
from paybuilder.parser import InstructionParser
from paybuilder.writer import Pain013Writer

logger = logging.getLogger(__name__)

INPUT_SUFFIX = ".csv"
OUTPUT_SUFFIX = "_pain013.xml"


def output_file_name(input_file: Path) -> str:
    """
    Derives the output name from the input name: the last extension is dropped and
    `_pain013.xml` is appended (e.g. `payments.csv` -> `payments_pain013.xml`).
    """
    return f"{Path(input_file).stem}{OUTPUT_SUFFIX}"


class BatchProcessor:
    """
    Orchestrates directory level conversion: every *.csv file in the input
    directory becomes one pain.013 document in the output directory.

    Failures are isolated per file; one bad file never stops the rest of the run.
    """

    def __init__(
        self,
        settings: Optional[BuilderSettings] = None,
        parser: Optional[InstructionParser] = None,
        writer: Optional[Pain013Writer] = None,
    ):
        self.settings = settings or BuilderSettings()
        self.parser = parser or InstructionParser(
            separator=self.settings.separator,
            error_policy=self.settings.error_policy,
        )
        self.writer = writer or Pain013Writer(initiating_party=self.settings.initiating_party)

    def read_file(self, csv_file: Path) -> ParseResult:
        """Reads and normalizes one input file."""
        # newline="" keeps \r, \n and \r\n all acting as line boundaries
        with open(csv_file, "r", encoding=self.settings.encoding, newline="") as f:
            return self.parser.parse_detailed(f)

    def find_input_files(self, input_dir: Path) -> List[Path]:
        return sorted(
            path
            for path in input_dir.iterdir()
            if path.is_file() and path.name.lower().endswith(INPUT_SUFFIX)
        )

    def process_file(self, csv_file: Path, output_dir: Path) -> Optional[Path]:
        """
        Converts a single input file.

        Returns:
            Optional[Path]: The written XML file, or None when the input held no records.

        Raises:
            PaymentBuilderError: The file is empty or holds a malformed row.
            OSError: The file could not be read or the output could not be written.
        """
        csv_file = Path(csv_file)
        output_dir = Path(output_dir)
        logger.info("Parsing CSV file: %s", csv_file.name)

        result = self.read_file(csv_file)
        logger.info("Parsed %d payment record(s)", len(result.instructions))
        for skipped in result.skipped:
            logger.warning("Skipped line %d in %s: %s", skipped.line_number, csv_file.name, skipped.cause)

        if not result.instructions:
            logger.warning("No records found in file: %s", csv_file.name)
            return None

        xml_content = self.writer.to_xml(result.instructions)

        output_file = output_dir / output_file_name(csv_file)
        output_file.write_text(xml_content, encoding="utf-8")
        logger.info(
            "Generated payment message: %s",
            output_file.name,
            extra={
                "extra_fields": {
                    "input_file": csv_file.name,
                    "output_file": output_file.name,
                    "transactions": len(result.instructions),
                    "skipped_lines": len(result.skipped),
                }
            },
        )
        return output_file

    def process_input_files(self) -> int:
        """
        Processes every *.csv file in the configured input directory.

        Returns:
            int: The number of files processed successfully (files without records included).
        """
        input_dir = Path(self.settings.input_directory)
        output_dir = Path(self.settings.output_directory)

        input_dir.mkdir(parents=True, exist_ok=True)
        output_dir.mkdir(parents=True, exist_ok=True)

        logger.info("Processing CSV files from: %s", input_dir.resolve())
        logger.info("Output directory: %s", output_dir.resolve())

        csv_files = self.find_input_files(input_dir)
        logger.info("Found %d CSV file(s) to process", len(csv_files))

        processed_count = 0
        for csv_file in csv_files:
            try:
                self.process_file(csv_file, output_dir)
            except Exception as exc:
                logger.error("Error processing file %s: %s", csv_file.name, exc, exc_info=True)
                continue
            processed_count += 1
            logger.info("Successfully processed: %s", csv_file.name)

        logger.info("Processing complete. %d file(s) processed successfully", processed_count)
        return processed_count

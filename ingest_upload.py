import argparse
import pathlib
import sys

from datafiles.ingestion import UploadRequest, files_to_dataframe, ingest
from datafiles.ingestion.errors import IngestExecutionError
from datafiles.ingestion.settings import IngestSettings
from datafiles.utils.utils import init_logger


def parse_args():
    parser = argparse.ArgumentParser(
        description="Ingest one uploaded file and write the manifest of the data files it produces",
    )

    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Path to the uploaded file"
    )

    parser.add_argument(
        "--content_type",
        type=str,
        default=None,
        help="Content type declared by the uploader (e.g., text/csv)"
    )

    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to the YAML config file (sections 'ingest' and 'logger')"
    )

    parser.add_argument(
        "--size_limit",
        type=int,
        default=None,
        help="Per-file size limit in bytes (overrides the config)"
    )

    parser.add_argument(
        "--quota",
        type=int,
        default=None,
        help="Remaining storage quota in bytes (untracked if not given)"
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Manifest file to write (.parquet or .csv)"
    )

    return parser.parse_args()


def main():
    args = parse_args()
    logger = init_logger(args.config, "datafiles")

    settings = IngestSettings.from_config(args.config, logger)
    input_path = pathlib.Path(args.input)

    try:
        with input_path.open("rb") as stream:
            result = ingest(
                UploadRequest(filename=input_path.name, stream=stream, content_type=args.content_type),
                size_limit=args.size_limit,
                quota_ceiling=args.quota,
                settings=settings,
            )
    except IngestExecutionError as e:
        logger.error(f"Ingestion of {input_path.name} aborted: {e.message}")
        sys.exit(1)

    if not result.ok:
        logger.error(f"Ingestion of {input_path.name} failed: {result.error_message}")
        sys.exit(2)

    if result.warning:
        logger.warning(result.warning)
    logger.info(f"{input_path.name} ({result.content_type}) produced {len(result.files)} file(s)")

    df = files_to_dataframe(result)
    if args.output:
        output = pathlib.Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.suffix.lower() == ".csv":
            df.to_csv(output, index=False)
        else:
            df.to_parquet(output, index=False)
        logger.info(f"Manifest written to {output}")
    else:
        print(df.to_string(index=False))


if __name__ == "__main__":
    main()

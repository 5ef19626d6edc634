"""
Purpose: Download and unpack the raw data archive into datastore/raw
Date: 2026-10-19

The download is skipped when the archive file is already present, and the
extraction is skipped when the raw folder already has platform data, so the
step can be re-run safely.

Execute with: python -m wellbeing.clean.fetch_archive <archive-url>
"""

import argparse
import sys
import zipfile
from pathlib import Path

import httpx

from wellbeing.study_data import DATASTORE, PLATFORMS, RAW_DIR

ARCHIVE_PATH = DATASTORE / "raw_archive.zip"
CHUNK_SIZE = 1024 * 1024


def download_archive(url: str, dest: Path = ARCHIVE_PATH, timeout: float = 60.0) -> Path:
    """Stream the archive to dest unless it already exists."""
    dest = Path(dest)
    if dest.exists():
        print(f"Archive already present: {dest}")
        return dest

    dest.parent.mkdir(parents=True, exist_ok=True)
    partial = dest.with_suffix(dest.suffix + ".part")
    print(f"Downloading {url}")
    with httpx.stream("GET", url, timeout=timeout, follow_redirects=True) as response:
        response.raise_for_status()
        with open(partial, "wb") as f:
            for chunk in response.iter_bytes(CHUNK_SIZE):
                f.write(chunk)
    partial.replace(dest)
    print(f"Saved archive: {dest} ({dest.stat().st_size / 1e6:.1f} MB)")
    return dest


def has_raw_data(raw_dir: Path = RAW_DIR) -> bool:
    """True when every platform folder already exists under raw_dir."""
    return all((Path(raw_dir) / name).is_dir() for name in PLATFORMS)


def extract_archive(archive: Path, raw_dir: Path = RAW_DIR) -> Path:
    """Unpack the archive into raw_dir unless the platform folders exist."""
    raw_dir = Path(raw_dir)
    if has_raw_data(raw_dir):
        print(f"Raw data already extracted: {raw_dir}")
        return raw_dir

    raw_dir.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(archive) as zf:
        zf.extractall(raw_dir)
        print(f"Extracted {len(zf.namelist())} files to {raw_dir}")
    return raw_dir


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fetch the raw study data archive")
    parser.add_argument("url", help="Download URL of the zipped raw data")
    parser.add_argument("--dest", default=ARCHIVE_PATH, help="Where to store the zip")
    parser.add_argument("--raw-dir", default=RAW_DIR, help="Where to extract it")
    args = parser.parse_args(argv)

    try:
        archive = download_archive(args.url, Path(args.dest))
        extract_archive(archive, Path(args.raw_dir))
    except (httpx.HTTPError, zipfile.BadZipFile, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

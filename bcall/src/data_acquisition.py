"""
Data Acquisition Module for B-Call analyses.

Reads roll-call data from local CSV/Excel files and downloads per-Congress
voting records from Voteview.com (UCLA Political Science).
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import pandas as pd
import requests
from tqdm import tqdm

from .preprocessing import RollcallPreprocessor, rollcall_from_voteview
from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {'.xlsx', '.xls', '.xlsm'}


def read_table(path: Union[str, Path], sheet: Union[int, str] = 0, **kwargs) -> pd.DataFrame:
    """
    Read a CSV or Excel file into a DataFrame.

    Args:
        path: File path; Excel is detected by extension.
        sheet: Sheet name or index for Excel files.
        **kwargs: Passed to the pandas reader.

    Returns:
        DataFrame with the file contents.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    if path.suffix.lower() in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet, **kwargs)
    else:
        df = pd.read_csv(path, **kwargs)

    logger.info(f"Read {path.name}: {df.shape[0]} rows x {df.shape[1]} columns")
    return df


def load_rollcall_csv(path: Union[str, Path]) -> RollcallMatrix:
    """
    Load a wide roll-call CSV (legislators as rows, votes as columns).

    The first column holds legislator identifiers; non-numeric cells are
    treated as missing and legislators without any vote are dropped.
    """
    df = read_table(path, index_col=0)
    df.index = df.index.astype(str)
    matrix = RollcallMatrix.from_frame(df, drop_empty=True)
    counts = matrix.value_counts()
    logger.info(
        f"Loaded {matrix.n_legislators} legislators x {matrix.n_votes} votes "
        f"({matrix.completeness()}% complete; {counts['yea']} yea, {counts['nay']} nay, "
        f"{counts['abstain']} abstain, {counts['missing']} missing)"
    )
    return matrix


def load_vote_files(
    votes_file: Union[str, Path],
    legislators_file: Optional[Union[str, Path]] = None,
    votes_sheet: Union[int, str] = 0,
    legislators_sheet: Union[int, str] = 0
) -> Tuple[RollcallMatrix, pd.DataFrame]:
    """
    Load long-format vote records (and optional legislator metadata).

    Args:
        votes_file: CSV/Excel with `nm_y_apellidos`, `votacion_id`, `voto`.
        legislators_file: Optional CSV/Excel with `nm_y_apellidos` and
            metadata such as party.
        votes_sheet: Sheet of the votes workbook.
        legislators_sheet: Sheet of the legislators workbook.

    Returns:
        Tuple of (roll-call matrix, legislator info indexed by cleaned name).
    """
    votes = read_table(votes_file, sheet=votes_sheet)
    legislators = None
    if legislators_file is not None:
        legislators = read_table(legislators_file, sheet=legislators_sheet)

    preprocessor = RollcallPreprocessor(votes, legislators)
    matrix = preprocessor.create_rollcall_matrix()
    return matrix, preprocessor.legislator_info()


class VoteviewDataLoader:
    """
    Handles downloading and loading of Voteview.com per-Congress data.

    Data includes:
    - Members: Legislator metadata (party, state, DW-NOMINATE scores)
    - Votes: Individual vote records linking legislators to rollcalls
    """

    # Base URL for Voteview data
    BASE_URL = "https://voteview.com/static/data/out"

    # Per-congress URL patterns; {chamber} is "H", "S" or "HS"
    CONGRESS_URL_PATTERN = {
        "members": "members/{chamber}{congress:03d}_members.csv",
        "votes": "votes/{chamber}{congress:03d}_votes.csv",
    }

    CHAMBER_CODES = {"House": "H", "Senate": "S", None: "HS"}

    def __init__(self, data_dir: str = "data/raw"):
        """
        Initialize the data loader.

        Args:
            data_dir: Directory to store downloaded data files.
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _download_file(
        self,
        url: str,
        dest_path: Path,
        force: bool = False,
        chunk_size: int = 8192
    ) -> bool:
        """
        Download a file from URL to destination path.

        Args:
            url: Source URL to download from.
            dest_path: Local path to save the file.
            force: If True, re-download even if file exists.
            chunk_size: Download chunk size in bytes.

        Returns:
            True if download was successful, False otherwise.
        """
        if dest_path.exists() and not force:
            logger.info(f"File already exists: {dest_path}")
            return True

        logger.info(f"Downloading: {url}")

        try:
            response = requests.get(url, stream=True, timeout=60)
            response.raise_for_status()

            total_size = int(response.headers.get('content-length', 0))

            with open(dest_path, 'wb') as f:
                with tqdm(total=total_size, unit='B', unit_scale=True,
                          desc=dest_path.name) as pbar:
                    for chunk in response.iter_content(chunk_size=chunk_size):
                        if chunk:
                            f.write(chunk)
                            pbar.update(len(chunk))

            logger.info(f"Downloaded successfully: {dest_path}")
            return True

        except requests.RequestException as e:
            logger.error(f"Failed to download {url}: {e}")
            if dest_path.exists():
                dest_path.unlink()
            return False

    def congress_files(self, congress: int, chamber: Optional[str] = None) -> dict:
        """Local paths of the per-Congress files, keyed by dataset name."""
        code = self.CHAMBER_CODES[chamber]
        return {
            name: self.data_dir / f"{code}{congress:03d}_{name}.csv"
            for name in self.CONGRESS_URL_PATTERN
        }

    def download_congress_data(
        self,
        congress: int,
        chamber: Optional[str] = None,
        force: bool = False
    ) -> dict:
        """
        Download members and votes for a specific Congress number.

        Args:
            congress: Congress number (1-119+).
            chamber: "House", "Senate" or None for both.
            force: If True, re-download even if files exist.

        Returns:
            Dictionary mapping dataset names to file paths.
        """
        if chamber not in self.CHAMBER_CODES:
            raise ValueError(f"Unknown chamber: {chamber}")

        code = self.CHAMBER_CODES[chamber]
        downloaded = {}
        for name, dest_path in self.congress_files(congress, chamber).items():
            path = self.CONGRESS_URL_PATTERN[name].format(chamber=code, congress=congress)
            url = f"{self.BASE_URL}/{path}"
            if self._download_file(url, dest_path, force):
                downloaded[name] = dest_path
            else:
                logger.warning(f"Failed to download {name} for Congress {congress}")

        return downloaded

    def load_congress(
        self,
        congress: int,
        chamber: Optional[str] = None,
        by_name: bool = True
    ) -> Tuple[RollcallMatrix, pd.DataFrame]:
        """
        Download (if needed) and build the roll-call matrix of one Congress.

        Args:
            congress: Congress number.
            chamber: "House", "Senate" or None for both.
            by_name: Key legislators by cleaned `bioname` instead of `icpsr`.

        Returns:
            Tuple of (roll-call matrix, members DataFrame).
        """
        files = self.download_congress_data(congress, chamber)
        if 'votes' not in files:
            raise FileNotFoundError(f"Votes for Congress {congress} are not available")

        votes = pd.read_csv(files['votes'])
        members = pd.read_csv(files['members']) if 'members' in files else pd.DataFrame()

        matrix = rollcall_from_voteview(
            votes,
            members_df=members if by_name and not members.empty else None,
            chamber=chamber
        )
        return matrix, members

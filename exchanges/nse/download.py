"""
NSE Archive Downloads

Daily report files (bhavcopies, delivery data, price bands, security
reports) published on the NSE archives host. Compressed reports are
extracted next to the download and the archive is removed.

Equity bhavcopy naming changed with the UDiFF format on 2024-07-08:
    before: content/historical/EQUITIES/{YYYY}/{MON}/cm{DDMONYYYY}bhav.csv.zip
    after:  content/cm/BhavCopy_NSE_CM_0_0_0_{YYYYMMDD}_F_0000.csv.zip

A download that leaves no file, or an empty one, raises DownloadError after
the partial file has been deleted.
"""

import asyncio
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Union

from core.config import settings
from core.errors import ArchiveError, DownloadError
from core.logging import get_logger
from core.utils.archive import extract_archive
from core.utils.time import (
    DateLike,
    format_date_archive,
    format_date_ddmmyy,
    format_date_ddmmyyyy,
    format_date_ymd,
    to_date,
)
from exchanges.nse.session import SessionManager

logger = get_logger(__name__)

UDIFF_SWITCH_DATE = date(2024, 7, 8)

PathLike = Union[str, Path]


class DownloadApi:
    """
    Report downloads from the NSE archives host.

    Attributes:
        session: Shared SessionManager of the owning client
        download_dir: Default target folder (the session's download_dir)
    """

    def __init__(self, session: SessionManager):
        self.session = session
        self.archive_url = settings.nse_archive_url
        self.download_dir = session.download_dir

    # ============================================
    # Report URLs
    # ============================================

    def equity_bhavcopy_url(self, day: DateLike) -> str:
        day = to_date(day)
        if day < UDIFF_SWITCH_DATE:
            stamp = format_date_archive(day)
            return f"{self.archive_url}/content/historical/EQUITIES/{day.year}/{stamp[2:5]}/cm{stamp}bhav.csv.zip"
        return f"{self.archive_url}/content/cm/BhavCopy_NSE_CM_0_0_0_{format_date_ymd(day)}_F_0000.csv.zip"

    def delivery_bhavcopy_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/products/content/sec_bhavdata_full_{format_date_ddmmyyyy(day)}.csv"

    def indices_bhavcopy_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/content/indices/ind_close_all_{format_date_ddmmyyyy(day)}.csv"

    def fno_bhavcopy_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/content/fo/BhavCopy_NSE_FO_0_0_0_{format_date_ymd(day)}_F_0000.csv.zip"

    def priceband_report_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/content/equities/sec_list_{format_date_ddmmyyyy(day)}.csv"

    def pr_bhavcopy_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/archives/equities/bhavcopy/pr/PR{format_date_ddmmyy(day)}.zip"

    def cm_mii_security_report_url(self, day: DateLike) -> str:
        return f"{self.archive_url}/content/cm/NSE_CM_security_{format_date_ddmmyyyy(day)}.csv.gz"

    # ============================================
    # Downloads
    # ============================================

    async def download_equity_bhavcopy(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        """Cash-market bhavcopy for a trading day, extracted to CSV."""
        file = await self._download(self.equity_bhavcopy_url(day), folder)
        return await asyncio.to_thread(extract_archive, file)

    async def download_delivery_bhavcopy(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        """Full bhavcopy with delivery quantities."""
        return await self._download(self.delivery_bhavcopy_url(day), folder)

    async def download_indices_bhavcopy(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        return await self._download(self.indices_bhavcopy_url(day), folder)

    async def download_fno_bhavcopy(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        """F&O UDiFF bhavcopy, extracted to CSV."""
        file = await self._download(self.fno_bhavcopy_url(day), folder)
        return await asyncio.to_thread(extract_archive, file)

    async def download_priceband_report(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        return await self._download(self.priceband_report_url(day), folder)

    async def download_pr_bhavcopy(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        """PR bundle (kept zipped: it holds several unrelated reports)."""
        return await self._download(self.pr_bhavcopy_url(day), folder)

    async def download_cm_mii_security_report(self, day: DateLike, folder: Optional[PathLike] = None) -> Path:
        """CM security master, decompressed from .gz."""
        file = await self._download(self.cm_mii_security_report_url(day), folder)
        return await asyncio.to_thread(extract_archive, file)

    async def download_document(
        self,
        url: str,
        folder: Optional[PathLike] = None,
        extract_files: Optional[Iterable[str]] = None
    ) -> Path:
        """
        Download any file; zip files are extracted.

        Args:
            url: Absolute file URL (e.g., a circular or annual report link)
            folder: Target folder (defaults to download_dir)
            extract_files: Zip members to extract (all when omitted)

        Raises:
            DownloadError: If nothing usable was downloaded
            ArchiveError: If the zip cannot be extracted (the archive is deleted)
        """
        file = await self._download(url, folder)

        if file.suffix.lower() != ".zip":
            return file

        try:
            return await asyncio.to_thread(extract_archive, file, members=extract_files)
        except ArchiveError:
            file.unlink(missing_ok=True)
            raise

    async def _download(self, url: str, folder: Optional[PathLike]) -> Path:
        target = Path(folder) if folder else self.download_dir
        try:
            return await self.session.download_to_file(url, target)
        except DownloadError as e:
            Path(e.path).unlink(missing_ok=True)
            logger.error(f"Download failed for {url}: {e}")
            raise

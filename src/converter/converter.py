from __future__ import annotations

import multiprocessing
import os
import shutil
import signal
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Callable, List, Optional, Protocol

import fitz  # PyMuPDF
from docx2pdf import convert as docx2pdf_convert

from src.errors.api import ConversionError
from .model import PDF_EXTENSION, ConvertedDocument


DEFAULT_TIMEOUT_SEC: float = 30.0
DEFAULT_SOFFICE_BINARY: str = "soffice"
FALLBACK_BINARIES = ("soffice", "libreoffice")
WORK_DOCUMENT_NAME: str = "document.docx"
STDERR_TAIL_CHARS: int = 400
KILL_GRACE_SEC: float = 5.0

_SPAWN = multiprocessing.get_context("spawn")


class Converter(Protocol):
    def convert(self, document_bytes: bytes) -> ConvertedDocument:
        ...


class LibreOfficeConverter:
    """Headless LibreOffice run per document, bounded by a wall-clock timeout."""

    engine = "libreoffice"

    def __init__(self, binary: str = DEFAULT_SOFFICE_BINARY, timeout: float = DEFAULT_TIMEOUT_SEC):
        self.binary = binary
        self.timeout = timeout

    def convert(self, document_bytes: bytes) -> ConvertedDocument:
        executable = self._resolve_binary()
        try:
            with tempfile.TemporaryDirectory(prefix="schedule9_") as tmp:
                work_dir = Path(tmp)
                src = work_dir / WORK_DOCUMENT_NAME
                src.write_bytes(document_bytes)

                cmd = self._build_command(executable, src, work_dir)
                returncode, stderr = self._run(cmd)

                produced = src.with_suffix(f".{PDF_EXTENSION}")
                if returncode != 0:
                    raise ConversionError(f"{self.engine} exited with code {returncode}: {_tail(stderr)}")
                if not produced.exists():
                    raise ConversionError(f"{self.engine} produced no PDF: {_tail(stderr)}")
                pdf_bytes = produced.read_bytes()
        except OSError as e:
            raise ConversionError(f"{self.engine} work files failed: {e}") from e
        return _checked(pdf_bytes, self.engine)

    def _build_command(self, executable: str, src: Path, work_dir: Path) -> List[str]:
        # Throwaway user profile; the default one is locked by any running instance.
        profile = (work_dir / "profile").as_uri()
        return [
            executable,
            "--headless",
            "--norestore",
            f"-env:UserInstallation={profile}",
            "--convert-to",
            PDF_EXTENSION,
            "--outdir",
            str(work_dir),
            str(src),
        ]

    def _run(self, cmd: List[str]):
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise ConversionError(f"Cannot start {cmd[0]}: {e}") from e

        with proc:
            try:
                _, stderr = proc.communicate(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                self._kill(proc)
                proc.communicate()
                raise ConversionError(f"{self.engine} timed out after {self.timeout:g}s")
        return proc.returncode, stderr.decode("utf-8", errors="replace")

    def _kill(self, proc: subprocess.Popen) -> None:
        if hasattr(os, "killpg"):
            try:
                os.killpg(proc.pid, signal.SIGKILL)
                return
            except ProcessLookupError:
                return
        proc.kill()

    def _resolve_binary(self) -> str:
        candidates = [self.binary] + [b for b in FALLBACK_BINARIES if b != self.binary]
        for name in candidates:
            found = shutil.which(name)
            if found:
                return found
        raise ConversionError(f"LibreOffice executable not found (tried: {', '.join(candidates)})")


class Docx2PdfConverter:
    """docx2pdf (Microsoft Word automation) in a spawned child process.

    The child is terminated on timeout, so a hung Word call never outlives the row.
    """

    engine = "docx2pdf"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SEC, worker: Optional[Callable[[str, str], None]] = None):
        self.timeout = timeout
        self.worker = worker or _docx2pdf_worker

    def convert(self, document_bytes: bytes) -> ConvertedDocument:
        try:
            with tempfile.TemporaryDirectory(prefix="schedule9_", ignore_cleanup_errors=True) as tmp:
                src = Path(tmp) / WORK_DOCUMENT_NAME
                dst = src.with_suffix(f".{PDF_EXTENSION}")
                src.write_bytes(document_bytes)

                self._run(str(src), str(dst))

                if not dst.exists():
                    raise ConversionError(f"{self.engine} produced no PDF")
                pdf_bytes = dst.read_bytes()
        except OSError as e:
            raise ConversionError(f"{self.engine} work files failed: {e}") from e
        return _checked(pdf_bytes, self.engine)

    def _run(self, src: str, dst: str) -> None:
        result_conn, child_conn = _SPAWN.Pipe(duplex=False)
        proc = _SPAWN.Process(target=_child_main, args=(self.worker, src, dst, child_conn), daemon=True)
        try:
            proc.start()
            child_conn.close()
            proc.join(self.timeout)
            if proc.is_alive():
                self._kill(proc)
                raise ConversionError(f"{self.engine} timed out after {self.timeout:g}s")
            error = result_conn.recv() if result_conn.poll() else f"worker exited with code {proc.exitcode}"
        finally:
            child_conn.close()
            result_conn.close()
        if error:
            raise ConversionError(f"{self.engine} failed: {error}")

    def _kill(self, proc) -> None:
        proc.terminate()
        proc.join(KILL_GRACE_SEC)
        if proc.is_alive():
            proc.kill()
            proc.join()


def _docx2pdf_worker(src: str, dst: str) -> None:
    com = None
    if sys.platform == "win32":
        # Word.Application dispatch fails on a thread without COM initialised.
        import pythoncom

        com = pythoncom
        com.CoInitialize()
    try:
        docx2pdf_convert(src, dst)
    finally:
        if com is not None:
            com.CoUninitialize()


def _child_main(worker: Callable[[str, str], None], src: str, dst: str, conn) -> None:
    try:
        worker(src, dst)
    except Exception as e:
        conn.send(f"{type(e).__name__}: {e}")
    else:
        conn.send(None)
    finally:
        conn.close()


def make_converter(
    name: str = LibreOfficeConverter.engine,
    timeout: float = DEFAULT_TIMEOUT_SEC,
    binary: Optional[str] = None,
) -> Converter:
    if name == LibreOfficeConverter.engine:
        return LibreOfficeConverter(binary=binary or DEFAULT_SOFFICE_BINARY, timeout=timeout)
    if name == Docx2PdfConverter.engine:
        return Docx2PdfConverter(timeout=timeout)
    raise ValueError(f"Unknown converter: {name!r}")


def _checked(pdf_bytes: bytes, engine: str) -> ConvertedDocument:
    try:
        with fitz.open(stream=pdf_bytes, filetype=PDF_EXTENSION) as doc:
            page_count = doc.page_count
    except Exception as e:
        raise ConversionError(f"{engine} produced an unreadable PDF: {e}") from e
    if page_count < 1:
        raise ConversionError(f"{engine} produced an empty PDF")
    return ConvertedDocument(data=pdf_bytes, page_count=page_count, engine=engine)


def _tail(text: str) -> str:
    text = text.strip()
    if not text:
        return "no diagnostic output"
    return text[-STDERR_TAIL_CHARS:]

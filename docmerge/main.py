import argparse
import asyncio
from pathlib import Path

from docmerge.config.settings import Settings
from docmerge.editor.session import EditorSession
from docmerge.logging.logger import Log
from docmerge.merge.exceptions import MergeError
from docmerge.registry.models import DocumentStatus, UploadedFile
from docmerge.templates.memory_repository import InMemoryTemplateRepository
from docmerge.tokens.resolver import find_tokens
from docmerge.tokens.vocabulary import TokenVocabulary


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse arguments -> load settings -> run the chosen command."""
    args = _build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level)
    return args.handler(args, settings)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docmerge",
        description="Merge PDF and DOCX documents and inspect merge tokens.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    merge = commands.add_parser("merge", help="Normalize inputs and write one merged PDF")
    merge.add_argument("output", type=Path, help="Path of the merged PDF to write")
    merge.add_argument("inputs", type=Path, nargs="+", help="PDF or DOCX files, in order")
    merge.set_defaults(handler=_run_merge)

    tokens = commands.add_parser("tokens", help="List the merge tokens used in a text file")
    tokens.add_argument("file", type=Path, help="Template body text file")
    tokens.set_defaults(handler=_run_tokens)
    return parser


def _run_merge(args: argparse.Namespace, settings: Settings) -> int:
    return asyncio.run(_merge(args.output, args.inputs, settings))


async def _merge(output: Path, inputs: list[Path], settings: Settings) -> int:
    missing = [path for path in inputs if not path.is_file()]
    if missing:
        for path in missing:
            Log.error(f"Input file not found: {path}")
        return 1

    session = EditorSession.from_settings(settings, repository=InMemoryTemplateRepository())
    try:
        result = await session.upload(UploadedFile.from_path(path) for path in inputs)
        for rejection in result.rejected:
            Log.error(f"Rejected: {rejection}")
        if result.rejected:
            return 1

        artifact = await session.rebuild(wait=True)
        for document in session.registry.ordered_documents():
            if document.status is DocumentStatus.FAILED:
                print(f"skipped  {document.original_name}: {document.failure_reason}")
                continue
            offset = artifact.page_offsets[document.id]
            print(
                f"{offset + 1:>5}-{offset + document.page_count:<5} "
                f"{document.original_name} ({document.page_count} pages)"
            )

        merged = await session.render_merged_pdf()
    except MergeError as exc:
        Log.error(f"Merge failed: {exc}")
        return 1
    finally:
        await session.close()

    if not merged:
        Log.error("Nothing to write: the merged document has no pages")
        return 1
    output.write_bytes(merged)
    Log.info(f"Wrote {artifact.total_pages} pages", output=str(output))
    return 0


def _run_tokens(args: argparse.Namespace, settings: Settings) -> int:
    try:
        text = args.file.read_text(encoding="utf-8")
    except OSError as exc:
        Log.error(f"Cannot read {args.file}: {exc}")
        return 1

    vocabulary = TokenVocabulary.default()
    for name in find_tokens(text):
        marker = "" if name in vocabulary else "  (unknown)"
        print(f"{name}{marker}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

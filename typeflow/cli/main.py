"""Main CLI entry point for typeflow"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from typeflow.analyzers.constraint_generator import InvariantViolation
from typeflow.analyzers.query import QueryResponse, TypeQuery
from typeflow.analyzers.type_inference import TypeInference
from typeflow.frontend import ParseError, normalize_language, parse_source

SUFFIX_LANGUAGES = {
    ".lua": "lua",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}


def detect_language(input_file: Path) -> str:
    """Source language of a file from its suffix (JavaScript by default)"""
    return SUFFIX_LANGUAGES.get(input_file.suffix.lower(), "javascript")


def format_response(response: QueryResponse) -> str:
    """Render a query response as plain text

    Args:
        response: Query response

    Returns:
        One field per line
    """
    if response.is_empty():
        return "No result"
    lines = [f"Types: {', '.join(response.type_names) or '(none)'}"]
    if response.property_names:
        lines.append(f"Properties: {', '.join(response.property_names)}")
    if response.variable_name is not None:
        lines.append(f"Variable: {response.variable_name}")
        spans = ", ".join(f"{start}-{end}" for start, end in response.occurrences)
        lines.append(f"Occurrences: {spans}")
    return "\n".join(lines)


def format_globals(inference: TypeInference) -> str:
    """Render every global binding with its inferred types

    Args:
        inference: Solved analysis pass

    Returns:
        One ``name: types`` line per global
    """
    lines = []
    for name, aval in sorted(inference.context.global_scope.bindings.items()):
        lines.append(f"{name}: {', '.join(aval.type_names()) or '(none)'}")
    return "\n".join(lines)


def analyze_file(input_file: Path, language: str, call_site_sensitivity: int = 0,
                 verbose: bool = False) -> TypeInference:
    """Parse and analyze one source file

    Args:
        input_file: Path to the source file
        language: Source language
        call_site_sensitivity: Call sites kept per analysis context
        verbose: Enable verbose propagation logging

    Returns:
        Solved analysis pass

    Raises:
        ParseError: If the file has syntax errors
        InvariantViolation: If the analysis aborts
    """
    with open(input_file, 'r', encoding='utf-8') as f:
        source = f.read()

    program = parse_source(source, language)
    inference = TypeInference(call_site_sensitivity=call_site_sensitivity, verbose=verbose)
    return inference.infer_program(program)


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        description='typeflow - Flow-based type inference for JavaScript and Lua',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Types of every global binding
  typeflow app.js

  # Types and occurrences at a cursor offset
  typeflow app.js --offset 42
  typeflow script.lua --offset 10 --json

  # Context-sensitive analysis (one call site per context)
  typeflow app.js --call-site-sensitivity 1 --verbose
        """
    )

    parser.add_argument('input', type=Path, help='Input source file')
    parser.add_argument(
        '--offset', type=int, default=None,
        help='Character offset to query (default: list global bindings)'
    )
    parser.add_argument(
        '--language', choices=['js', 'javascript', 'lua'], default=None,
        help='Source language (default: from the file suffix)'
    )
    parser.add_argument(
        '--call-site-sensitivity', '-k', type=int, default=0,
        help='Call sites kept per analysis context (default: 0)'
    )
    parser.add_argument(
        '--json', action='store_true',
        help='Print the query response as JSON'
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Print propagation and analysis summaries'
    )

    args = parser.parse_args(argv)

    input_file = Path(args.input)
    if not input_file.exists():
        print(f"Error: Input file not found: {input_file}", file=sys.stderr)
        sys.exit(1)
    if args.call_site_sensitivity < 0:
        print("Error: --call-site-sensitivity must be non-negative", file=sys.stderr)
        sys.exit(1)

    language = normalize_language(args.language) if args.language else detect_language(input_file)

    try:
        inference = analyze_file(input_file, language, args.call_site_sensitivity, args.verbose)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error: Cannot read {input_file}: {e}", file=sys.stderr)
        sys.exit(1)
    except (ParseError, InvariantViolation) as e:
        print(f"Error analyzing {input_file}: {e}", file=sys.stderr)
        response = QueryResponse()
        print(json.dumps(response.to_dict()) if args.json else format_response(response))
        return

    if args.offset is not None:
        response = TypeQuery(inference).respond(args.offset)
        print(json.dumps(response.to_dict()) if args.json else format_response(response))
    elif args.json:
        bindings = {
            name: aval.type_names()
            for name, aval in sorted(inference.context.global_scope.bindings.items())
        }
        print(json.dumps(bindings, indent=2))
    else:
        print(format_globals(inference))

    if args.verbose:
        print()
        print(inference.print_summary())


if __name__ == '__main__':
    main()

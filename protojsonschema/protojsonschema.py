"""

Command line utility to convert Protobuf .proto files to JSON Schema.

"""

import argparse
import logging
import os
import sys
import tempfile

from protojsonschema import _version
from protojsonschema.prototojsons import convert_proto_to_json_schema


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(description='Convert Protobuf .proto files to JSON Schema.')
    parser.add_argument('proto', type=str, nargs='?', help='Path to the .proto file. Reads stdin if omitted.')
    parser.add_argument('--out', type=str, help='Path to the JSON Schema output file. Prints to stdout if omitted.')
    parser.add_argument('--message', type=str, help='Name of the message to convert. All messages if omitted.')
    parser.add_argument('--proto-root', type=str, dest='proto_root', help='Additional directory for resolving imports.')
    parser.add_argument('--preserve-order', action='store_true', dest='preserve_order',
                        help='Emit properties in field declaration order.')
    parser.add_argument('--indent', type=int, default=2, help='Indentation of the output (unordered mode only).')
    parser.add_argument('--verbose', action='store_true', help='Log progress to stderr.')
    parser.add_argument('--version', action='store_true', help='Print the version of protojsonschema.')
    return parser


def main(argv=None):
    """Main function for the command line utility."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f'protojsonschema {_version.version}')
        return

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    temp_input = None
    input_file_path = args.proto
    try:
        if input_file_path is None:
            temp_input = tempfile.NamedTemporaryFile(delete=False, mode='w', encoding='utf-8', suffix='.proto')
            input_file_path = temp_input.name
            temp_input.write(sys.stdin.read())
            temp_input.flush()
            temp_input.close()

        result = convert_proto_to_json_schema(
            input_file_path,
            args.out,
            message_type=args.message,
            proto_root=args.proto_root or (os.getcwd() if temp_input else None),
            preserve_order=args.preserve_order,
            indent=args.indent)
        if not args.out:
            sys.stdout.write(result + '\n')
    except Exception as e:
        print("Error: ", str(e), file=sys.stderr)
        sys.exit(1)
    finally:
        if temp_input:
            try:
                os.remove(temp_input.name)
            except OSError as e:
                print(f"Error: Could not delete temporary input file {temp_input.name}. {e}", file=sys.stderr)


if __name__ == "__main__":
    main()

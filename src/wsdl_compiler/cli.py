#!/usr/bin/env python3
"""
WSDL Client Compiler
Generates typed Python client modules from WSDL 1.1 service descriptions
"""
import argparse
import json
import logging
import os
import sys
import tempfile
from pathlib import Path

from . import __version__
from .driver import SOAP_VERSIONS, Generator, GeneratorConfig
from .errors import CompilerError, ConfigurationError
from .resolver import resolve
from .wsdl import parse_definitions

log = logging.getLogger(__name__)


def _replace(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as fh:
            fh.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def write_atomic(path, text):
    """Write ``text`` to ``path`` through a temporary file in the same directory."""
    try:
        _replace(path, text)
    except OSError as exc:
        raise ConfigurationError(f'cannot write {path}: {exc.strerror}',
                                 entity=str(path)) from exc


def write_report(output_file, generator, result):
    """Write a capture report (JSON) next to ``output_file``."""
    model = generator.model
    report = {
        'input': str(generator.config.wsdl_path),
        'output_file': str(output_file),
        'soap_version': generator.config.soap_version,
        'counts': result.counts,
        'services': [
            {
                'name': svc.name,
                'port': svc.port.name,
                'address': svc.address,
                'soap_version': svc.soap_version,
                'operations': [
                    {'name': op.name, 'action': op.action, 'namespace': op.namespace,
                     'one_way': op.response is None}
                    for op in svc.operations
                ],
            }
            for svc in model.services
        ],
        'skipped_services': [
            svc.name for svc in generator.definitions.services
            if svc.name not in {s.name for s in model.services}
        ],
    }
    report_file = output_file.with_suffix('.report.json')
    write_atomic(report_file, json.dumps(report, indent=2) + '\n')
    return report_file


def cmd_generate(args):
    config = GeneratorConfig(
        wsdl_path=args.wsdl,
        output_dir=args.output_dir,
        module_name=args.module,
        client_name=args.client_name,
        soap_version=args.soap_version,
        lenient=args.lenient,
    )
    generator = Generator(config)
    result = generator.run()
    output_file = config.output_dir / result.filename
    print(f"Writing {output_file}...")
    write_atomic(output_file, result.source)
    report_file = write_report(output_file, generator, result) if args.report else None

    print("\n Compilation Complete!")
    print("-" * 40)
    print(f"  Types:       {result.counts['types']}")
    print(f"  Enums:       {result.counts['enums']}")
    print(f"  Elements:    {result.counts['elements']}")
    print(f"  Services:    {result.counts['services']}")
    print(f"  Operations:  {result.counts['operations']}")
    print(f"\n Output:   {output_file}")
    if report_file is not None:
        print(f" Report:   {report_file}")
    return 0


def cmd_info(args):
    config = GeneratorConfig(wsdl_path=args.wsdl).validate()
    definitions = parse_definitions(config.read_source())
    model = resolve(definitions, lenient=True)
    print(f"Target namespace: {definitions.target_namespace}")
    print(f"Types: {len(model.graph.structs())}  Enums: {len(model.graph.enums())}")
    for svc in model.services:
        print(f"\nService {svc.name} (port {svc.port.name}, SOAP {svc.soap_version})")
        print(f"  Address: {svc.address}")
        for op in svc.operations:
            print(f"  - {op.name}  action={op.action}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog='wsdl-compiler',
        description='Generate typed Python SOAP clients from WSDL 1.1 documents.')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true', help='enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    gen = sub.add_parser('generate', help='generate a client module')
    gen.add_argument('wsdl', help='path to the WSDL document')
    gen.add_argument('-o', '--output-dir', default='.', help='output directory')
    gen.add_argument('-m', '--module', default='soap_client', help='generated module name')
    gen.add_argument('-n', '--client-name', help='class name of the first client')
    gen.add_argument('--soap-version', choices=SOAP_VERSIONS,
                     help='only use ports bound to this SOAP version')
    gen.add_argument('--lenient', action='store_true',
                     help='generate types even when no service is declared')
    gen.add_argument('--report', action='store_true',
                     help='write a JSON capture report next to the module')
    gen.set_defaults(func=cmd_generate)

    info = sub.add_parser('info', help='summarize a WSDL document')
    info.add_argument('wsdl', help='path to the WSDL document')
    info.set_defaults(func=cmd_info)
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    print("=" * 80)
    print("WSDL Client Compiler")
    print("=" * 80)
    try:
        return args.func(args)
    except CompilerError as exc:
        stage = exc.stage.value if exc.stage is not None else 'compiler'
        print(f"error[{exc.kind}] {stage}: {exc.message}"
              + (f" (line {exc.line})" if exc.line is not None else ''), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

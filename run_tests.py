#!/usr/bin/env python3
"""Run the audiogist test suite through pytest

Marker flags combine: ``--unit --e2e`` runs both layers.
"""

import sys
import subprocess
import argparse

LAYERS = ('unit', 'integration', 'e2e')

# pipeline tests wait on asyncio locks, a hang should fail the run
DEFAULT_TIMEOUT = 60


def build_command(args) -> list:
    cmd = [sys.executable, '-m', 'pytest']

    layers = [layer for layer in LAYERS if getattr(args, layer)]
    if layers:
        cmd.extend(['-m', ' or '.join(layers)])

    if args.keyword:
        cmd.extend(['-k', args.keyword])

    if args.timeout > 0:
        cmd.extend(['--timeout', str(args.timeout)])

    if args.coverage:
        cmd.extend(['--cov=audiogist', '--cov=main', '--cov-report=term-missing'])
        if args.html:
            cmd.append('--cov-report=html')

    if args.verbose:
        cmd.append('-v')

    if args.failed:
        cmd.append('--lf')

    if args.exitfirst:
        cmd.append('-x')

    if args.parallel:
        cmd.extend(['-n', args.parallel])

    cmd.extend(args.tests)
    return cmd


def main():
    parser = argparse.ArgumentParser(description='Run audiogist tests')
    for layer in LAYERS:
        parser.add_argument(f'--{layer}', action='store_true', help=f'Include tests marked {layer}')
    parser.add_argument('-k', '--keyword', help='Only tests matching this pytest -k expression')
    parser.add_argument('--timeout', type=int, default=DEFAULT_TIMEOUT,
                        help=f'Per-test timeout in seconds, 0 disables (default {DEFAULT_TIMEOUT})')
    parser.add_argument('--coverage', action='store_true', help='Measure coverage of audiogist and main')
    parser.add_argument('--html', action='store_true', help='Also write an HTML coverage report')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--failed', action='store_true', help='Rerun only tests that failed last time')
    parser.add_argument('--exitfirst', '-x', action='store_true', help='Stop at the first failure')
    parser.add_argument('--parallel', '-n', help='Worker count for pytest-xdist (e.g. 4 or auto)')
    parser.add_argument('tests', nargs='*', help='Specific test files or node ids')

    args = parser.parse_args()
    if args.html and not args.coverage:
        parser.error('--html requires --coverage')

    cmd = build_command(args)
    print(f"Running: {' '.join(cmd)}")
    sys.exit(subprocess.run(cmd).returncode)


if __name__ == '__main__':
    main()

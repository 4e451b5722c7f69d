"""Command line entry point.

Walks over every image of an input folder. Without --roi each image
opens the interactive window; with --roi and --type the patches are
extracted and written without any window.
"""
from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .core import GeneratorConfig, ImageFolder, Region
from .generator import SampleGenerator


def build_parser() -> argparse.ArgumentParser:
    defaults = GeneratorConfig()
    parser = argparse.ArgumentParser(
        prog='nxpatch',
        description='Semi-automatic patch extraction via NXCC '
                    'template matching.')
    parser.add_argument('input_dir', nargs='?', default='sample_images',
                        help='folder with the input images')
    parser.add_argument('-o', '--output-dir', default='patches',
                        help='folder receiving the patches')
    parser.add_argument('--pattern', default='*.jpg',
                        help='glob selecting the input images')
    parser.add_argument('--template-size', type=int, default=32,
                        help='side of the initial (or fixed) template')
    parser.add_argument('--fixed-template', dest='resizable_template',
                        action='store_false',
                        help='keep the template at --template-size')
    parser.add_argument('--inspect-template', action='store_true',
                        help='show the selected template in its own window')
    parser.add_argument('--dist-thresh', type=float,
                        default=defaults.dist_thresh,
                        help='pick radius of the mouse, in pixels')
    parser.add_argument('--roi', type=int, nargs=4,
                        metavar=('X', 'Y', 'W', 'H'),
                        help='template region, skips the window')
    parser.add_argument('--threshold', type=float, default=None,
                        help='score threshold (default: median score)')
    parser.add_argument('--type', dest='pattern_type',
                        choices=defaults.pattern_types,
                        help='pattern type of the written patches')
    parser.add_argument('--no-session', dest='save_session',
                        action='store_false',
                        help='do not save the generator sessions')
    return parser


def run_headless(gen: SampleGenerator,
                 roi: Region,
                 pattern_type: str,
                 threshold: Optional[float] = None) -> int:
    gen.select_template(roi)
    state = gen.compute()
    if threshold is not None:
        state.set_threshold(threshold)
    return len(gen.write_patches(pattern_type))


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if args.roi is not None and args.pattern_type is None:
        print('[WARNING] --roi needs --type to know how to name the patches')
        return 2

    config = GeneratorConfig(template_size=args.template_size,
                             resizable_template=args.resizable_template,
                             inspect_template=args.inspect_template,
                             output_dir=args.output_dir,
                             dist_thresh=args.dist_thresh)
    folder = ImageFolder(args.input_dir, args.pattern)
    if len(folder) == 0:
        print(f'[WARNING] No images matching {args.pattern} '
              f'in {args.input_dir}')
        return 1

    done = []
    for path in folder.paths:
        gen = SampleGenerator.from_file(path, config)
        if args.roi is not None:
            try:
                run_headless(gen, Region(*args.roi), args.pattern_type,
                             args.threshold)
            except (ValueError, OSError) as e:
                print(f'[WARNING] {path.name}: {e}')
        else:
            from .gui import InteractiveSession
            InteractiveSession(gen).run()

        if gen.state is not None:
            done.append(gen)

    if args.save_session and done:
        stamp = datetime.now().strftime('%y_%m_%d-%H_%M_%S')
        session_dir = Path(args.output_dir).joinpath(
            f'sample_generators_{stamp}')
        saved = 0
        for gen in done:
            try:
                gen.save(session_dir.joinpath(gen.image_path.stem))
            except OSError as e:
                print(f'[WARNING] session of {gen.image_path.name} '
                      f'not saved: {e}')
            else:
                saved += 1
        print(f'[INFO] saved {saved} sessions to {session_dir}.')

    return 0


if __name__ == '__main__':
    sys.exit(main())

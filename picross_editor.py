#!/usr/bin/env python3

import argparse
import contextlib
import enum
import logging
import pathlib
import re
import sys
import typing

__version__ = '1.0.0'

logger = logging.getLogger(__name__)

THUMBNAIL_COLUMNS = 20
IMAGE_UNIT_SIZE = 16
PIXEL_SIZE = 20

COMMENT_CHARS = '#-'
LEFT_MARKER = 'LEFT:'
UP_MARKER = 'UP:'

Clue = typing.Tuple[int, ...]


class PixelState(enum.Enum):
    UNKNOWN = enum.auto()
    FILLED = enum.auto()
    CLEARED = enum.auto()

    def __str__(self):
        return self.name


class LineKind(enum.Enum):
    ROW = enum.auto()
    COL = enum.auto()

    def __str__(self):
        return self.name


class Point(typing.NamedTuple):
    x: int
    y: int


class Line(typing.NamedTuple):
    kind: LineKind
    n: int

    def __str__(self):
        return f'{self.kind} {self.n + 1}'


class ErrorKind(enum.Enum):
    MISSING_DIMENSION = enum.auto()
    DUPLICATE_DIMENSION = enum.auto()
    MALFORMED_DIMENSION = enum.auto()
    NON_POSITIVE_DIMENSION = enum.auto()
    MISSING_LEFT_MARKER = enum.auto()
    MISSING_UP_MARKER = enum.auto()
    UNEXPECTED_LINE = enum.auto()
    CLUE_LINE_COUNT = enum.auto()
    MALFORMED_CLUE = enum.auto()
    NON_POSITIVE_CLUE = enum.auto()
    UNSATISFIABLE_CLUE = enum.auto()
    CLUE_TOTAL_MISMATCH = enum.auto()
    MALFORMED_PROGRESS = enum.auto()
    OUT_OF_RANGE = enum.auto()

    def __str__(self):
        return self.name


class PicrossError(Exception):
    def __init__(self, kind: ErrorKind, message: str, line_no: int = None):
        self.kind = kind
        self.message = message
        self.line_no = line_no
        super().__init__(f'line {line_no}: {message}' if line_no else message)


class FormatError(PicrossError):
    pass


class InvalidDimensionError(PicrossError):
    pass


class UnsatisfiableClueError(PicrossError):
    pass


class OutOfRangeError(PicrossError, IndexError):
    def __init__(self, message: str):
        super().__init__(ErrorKind.OUT_OF_RANGE, message)


def strip_comment(text: str) -> str:
    for i, c in enumerate(text):
        if c in COMMENT_CHARS:
            return text[:i]

    return text


def extract_runs(content: typing.Iterable[PixelState]) -> Clue:
    runs = []
    count = 0
    for value in content:
        if value is PixelState.FILLED:
            count += 1
        elif value is PixelState.UNKNOWN or value is PixelState.CLEARED:
            if count > 0:
                runs.append(count)
            count = 0
        else:
            raise TypeError(f'{value!r} is not a PixelState')

    if count > 0:
        runs.append(count)

    return tuple(runs)


class PuzzleDefinition:
    """Immutable size and clues of one puzzle.

    ``name`` is a label only; two definitions compare equal when their size and
    clues are equal.
    """

    def __init__(self, name: str, width: int, height: int,
                 row_clues: typing.Iterable[typing.Iterable[int]],
                 col_clues: typing.Iterable[typing.Iterable[int]]):
        self._name = name
        self._width = width
        self._height = height
        self._row_clues = tuple(tuple(clue) for clue in row_clues)
        self._col_clues = tuple(tuple(clue) for clue in col_clues)

        self._validate()

    @property
    def name(self) -> str:
        return self._name

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def row_clues(self) -> typing.Tuple[Clue, ...]:
        return self._row_clues

    @property
    def col_clues(self) -> typing.Tuple[Clue, ...]:
        return self._col_clues

    def get_line_clues(self, line: Line) -> Clue:
        if line.kind == LineKind.ROW:
            return self._row_clues[line.n]
        elif line.kind == LineKind.COL:
            return self._col_clues[line.n]

    def _key(self):
        return self._width, self._height, self._row_clues, self._col_clues

    def __eq__(self, other):
        if not isinstance(other, PuzzleDefinition):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f'PuzzleDefinition({self._name!r}, {self._width}x{self._height})'

    def _validate(self):
        for label, value in (('width', self._width), ('height', self._height)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise FormatError(ErrorKind.MALFORMED_DIMENSION, f'{label} {value!r} is not an integer')
            if value <= 0:
                raise InvalidDimensionError(ErrorKind.NON_POSITIVE_DIMENSION, f'{label} must be positive, got {value}')

        if len(self._row_clues) != self._height:
            raise FormatError(ErrorKind.CLUE_LINE_COUNT,
                              f'expected {self._height} row clues, got {len(self._row_clues)}')
        if len(self._col_clues) != self._width:
            raise FormatError(ErrorKind.CLUE_LINE_COUNT,
                              f'expected {self._width} column clues, got {len(self._col_clues)}')

        self._check_line_clues(self._row_clues, self._width, LineKind.ROW)
        self._check_line_clues(self._col_clues, self._height, LineKind.COL)

    def totals_match(self) -> bool:
        """Whether row and column clues ask for the same number of filled cells.

        Every solvable puzzle satisfies this, but it is not a construction
        invariant; see :func:`pre_check`.
        """
        return sum(map(sum, self._row_clues)) == sum(map(sum, self._col_clues))

    @staticmethod
    def _check_line_clues(all_clues, length, line_kind):
        for i, clues in enumerate(all_clues):
            for value in clues:
                if not isinstance(value, int) or isinstance(value, bool):
                    raise FormatError(ErrorKind.MALFORMED_CLUE,
                                      f'{Line(line_kind, i)} clue {value!r} is not an integer')
                if value <= 0:
                    raise FormatError(ErrorKind.NON_POSITIVE_CLUE,
                                      f'{Line(line_kind, i)} clue {value} must be positive')

            min_len = sum(clues) + len(clues) - 1
            if clues and min_len > length:
                raise UnsatisfiableClueError(
                    ErrorKind.UNSATISFIABLE_CLUE,
                    f'{Line(line_kind, i)} clues {clues} cannot fit in {length} cells (at least {min_len})')


def pre_check(definition: PuzzleDefinition):
    if not definition.totals_match():
        row_total = sum(map(sum, definition.row_clues))
        col_total = sum(map(sum, definition.col_clues))
        raise UnsatisfiableClueError(
            ErrorKind.CLUE_TOTAL_MISMATCH,
            f'total row clues sum ({row_total}) not equal to col clues sum ({col_total})')


class FillGrid:
    def __init__(self, definition: PuzzleDefinition):
        self._definition = definition
        self._pixels = [PixelState.UNKNOWN] * (definition.width * definition.height)

    @property
    def definition(self) -> PuzzleDefinition:
        return self._definition

    @property
    def width(self) -> int:
        return self._definition.width

    @property
    def height(self) -> int:
        return self._definition.height

    def _index(self, x: int, y: int) -> int:
        index = cell_index(x, y, self.width, self.height)
        if index is None:
            raise OutOfRangeError(f'cell ({x}, {y}) is outside the {self.width}x{self.height} grid')
        return index

    def get_pixel(self, x: int, y: int) -> PixelState:
        return self._pixels[self._index(x, y)]

    def set_pixel(self, x: int, y: int, state: PixelState):
        if not isinstance(state, PixelState):
            raise TypeError(f'{state!r} is not a PixelState')
        self._pixels[self._index(x, y)] = state

    def get_row(self, y: int) -> typing.List[PixelState]:
        if not 0 <= y < self.height:
            raise OutOfRangeError(f'row {y} is outside the {self.width}x{self.height} grid')
        return self._pixels[y * self.width:(y + 1) * self.width]

    def get_column(self, x: int) -> typing.List[PixelState]:
        if not 0 <= x < self.width:
            raise OutOfRangeError(f'column {x} is outside the {self.width}x{self.height} grid')
        return self._pixels[x::self.width]

    def get_line_content(self, line: Line) -> typing.List[PixelState]:
        if line.kind == LineKind.ROW:
            return self.get_row(line.n)
        elif line.kind == LineKind.COL:
            return self.get_column(line.n)

    def lines(self) -> typing.Iterator[Line]:
        for y in range(self.height):
            yield Line(LineKind.ROW, y)
        for x in range(self.width):
            yield Line(LineKind.COL, x)

    def mismatched_lines(self) -> typing.List[Line]:
        return [line for line in self.lines()
                if extract_runs(self.get_line_content(line)) != self._definition.get_line_clues(line)]

    def is_solved(self) -> bool:
        # Unknown cells count as gaps, so a partial marking passes once every run matches.
        return all(extract_runs(self.get_line_content(line)) == self._definition.get_line_clues(line)
                   for line in self.lines())

    def is_decided(self) -> bool:
        return PixelState.UNKNOWN not in self._pixels

    def clear(self):
        self._pixels = [PixelState.UNKNOWN] * len(self._pixels)

    def __str__(self):
        return format_progress(self)


def cell_index(x: int, y: int, width: int, height: int) -> typing.Optional[int]:
    if 0 <= x < width and 0 <= y < height:
        return y * width + x
    return None


def cell_coord(index: int, width: int, height: int) -> typing.Optional[Point]:
    if 0 <= index < width * height:
        return Point(index % width, index // width)
    return None


def thumbnail_position(sequence_number: int, unit_size: int, columns_per_row: int = THUMBNAIL_COLUMNS) -> Point:
    """Top-left pixel of the ``sequence_number``-th (1-based) thumbnail in the picker image."""
    if sequence_number < 1:
        raise ValueError(f'sequence number starts from 1, got {sequence_number}')
    if columns_per_row < 1:
        raise ValueError(f'columns per row must be positive, got {columns_per_row}')

    row, column = divmod(sequence_number - 1, columns_per_row)
    return Point(column * unit_size, row * unit_size)


def pointer_to_cell(pixel_x: int, pixel_y: int, cell_pixel_size: int = PIXEL_SIZE) -> Point:
    return Point(pixel_x // cell_pixel_size, pixel_y // cell_pixel_size)


class ParseState(enum.Enum):
    HEADER = enum.auto()
    ROW_CLUES = enum.auto()
    UP_MARKER = enum.auto()
    COL_CLUES = enum.auto()
    DONE = enum.auto()


_DIMENSION_PATTERN = re.compile(r'^([WH])\s*=\s*(.*)$')


def _is_number(token: str) -> bool:
    return token.isascii() and token.isdigit()


def _parse_dimension(label: str, text: str, line_no: int) -> int:
    if not _is_number(text):
        raise FormatError(ErrorKind.MALFORMED_DIMENSION, f'{label} = {text!r} is not an integer', line_no)

    value = int(text)
    if value <= 0:
        raise InvalidDimensionError(ErrorKind.NON_POSITIVE_DIMENSION, f'{label} must be positive, got {value}', line_no)

    return value


def _parse_clue(text: str, line_no: int) -> Clue:
    clue = []
    for token in text.split():
        if not _is_number(token):
            raise FormatError(ErrorKind.MALFORMED_CLUE, f'clue token {token!r} is not an integer', line_no)
        value = int(token)
        if value <= 0:
            raise FormatError(ErrorKind.NON_POSITIVE_CLUE, f'clue token {value} must be positive', line_no)
        clue.append(value)

    return tuple(clue)


def _looks_like_clue(text: str) -> bool:
    return all(_is_number(token) for token in text.split())


def parse_puzzle(lines: typing.Iterable[str], name: str = '') -> PuzzleDefinition:
    """Parse the ``W``/``H``/``LEFT:``/``UP:`` text format.

    Comment-only lines are ignored everywhere. A blank line separates sections,
    except inside a clue section that still expects lines, where it is an
    empty clue.
    """
    state = ParseState.HEADER
    dimensions: typing.Dict[str, int] = {}
    row_clues: typing.List[Clue] = []
    col_clues: typing.List[Clue] = []
    line_no = 0

    for line_no, raw in enumerate(lines, start=1):
        blank = raw.strip() == ''
        text = strip_comment(raw).strip()
        if not blank and not text:
            continue

        if state == ParseState.HEADER:
            if blank:
                continue
            match = _DIMENSION_PATTERN.match(text)
            if match:
                label = match.group(1)
                if label in dimensions:
                    raise FormatError(ErrorKind.DUPLICATE_DIMENSION, f'{label} is declared more than once', line_no)
                dimensions[label] = _parse_dimension(label, match.group(2).strip(), line_no)
            elif text == LEFT_MARKER:
                for label in 'WH':
                    if label not in dimensions:
                        raise FormatError(ErrorKind.MISSING_DIMENSION, f'{label} is not declared', line_no)
                logger.debug('size %dx%d, reading row clues from line %d', dimensions['W'], dimensions['H'], line_no)
                state = ParseState.ROW_CLUES
            elif text == UP_MARKER:
                raise FormatError(ErrorKind.MISSING_LEFT_MARKER, f'{UP_MARKER} found before {LEFT_MARKER}', line_no)
            else:
                raise FormatError(ErrorKind.UNEXPECTED_LINE, f'unexpected line {text!r} in header', line_no)

        elif state == ParseState.ROW_CLUES:
            if text in (LEFT_MARKER, UP_MARKER):
                raise FormatError(ErrorKind.CLUE_LINE_COUNT,
                                  f'expected {dimensions["H"]} row clues, got {len(row_clues)}', line_no)
            row_clues.append(_parse_clue(text, line_no))
            if len(row_clues) == dimensions['H']:
                state = ParseState.UP_MARKER

        elif state == ParseState.UP_MARKER:
            if blank:
                continue
            elif text == UP_MARKER:
                logger.debug('reading column clues from line %d', line_no)
                state = ParseState.COL_CLUES
            elif _looks_like_clue(text):
                raise FormatError(ErrorKind.CLUE_LINE_COUNT, f'more than {dimensions["H"]} row clues', line_no)
            else:
                raise FormatError(ErrorKind.MISSING_UP_MARKER, f'expected {UP_MARKER}, got {text!r}', line_no)

        elif state == ParseState.COL_CLUES:
            if text in (LEFT_MARKER, UP_MARKER):
                raise FormatError(ErrorKind.CLUE_LINE_COUNT,
                                  f'expected {dimensions["W"]} column clues, got {len(col_clues)}', line_no)
            col_clues.append(_parse_clue(text, line_no))
            if len(col_clues) == dimensions['W']:
                state = ParseState.DONE

        elif state == ParseState.DONE:
            if blank:
                continue
            elif _looks_like_clue(text):
                raise FormatError(ErrorKind.CLUE_LINE_COUNT,
                                  f'more than {dimensions["W"]} column clues', line_no)
            else:
                raise FormatError(ErrorKind.UNEXPECTED_LINE, f'unexpected line {text!r} after {UP_MARKER}', line_no)

    if state == ParseState.HEADER:
        for label in 'WH':
            if label not in dimensions:
                raise FormatError(ErrorKind.MISSING_DIMENSION, f'{label} is not declared')
        raise FormatError(ErrorKind.MISSING_LEFT_MARKER, f'{LEFT_MARKER} section is missing')
    elif state == ParseState.ROW_CLUES:
        raise FormatError(ErrorKind.CLUE_LINE_COUNT, f'expected {dimensions["H"]} row clues, got {len(row_clues)}')
    elif state == ParseState.UP_MARKER:
        raise FormatError(ErrorKind.MISSING_UP_MARKER, f'{UP_MARKER} section is missing')
    elif state == ParseState.COL_CLUES:
        raise FormatError(ErrorKind.CLUE_LINE_COUNT, f'expected {dimensions["W"]} column clues, got {len(col_clues)}')

    logger.debug('parsed %d lines into a %dx%d puzzle', line_no, dimensions['W'], dimensions['H'])
    return PuzzleDefinition(name, dimensions['W'], dimensions['H'], row_clues, col_clues)


def format_clue(clue: Clue) -> str:
    return ' '.join(str(value) for value in clue)


def format_puzzle(definition: PuzzleDefinition) -> str:
    lines = [f'W = {definition.width}', f'H = {definition.height}', '', LEFT_MARKER]
    lines.extend(format_clue(clue) for clue in definition.row_clues)
    lines.extend(['', UP_MARKER])
    lines.extend(format_clue(clue) for clue in definition.col_clues)
    lines.append('')
    return '\n'.join(lines) + '\n'


class ProgressSymbols(typing.NamedTuple):
    filled: str
    cleared: str
    unknown: str
    fence: str


SYMBOLS = ProgressSymbols('@', '*', '.', '|')
FILLED_SYMBOLS = {'o', SYMBOLS.filled}
CLEARED_SYMBOLS = {'x', SYMBOLS.cleared}


def parse_progress_line(text: str, length: int, line_no: int = None) -> typing.List[PixelState]:
    content = []
    for c in text.rstrip('\r\n'):
        c = c.lower()
        if c in FILLED_SYMBOLS:
            content.append(PixelState.FILLED)
        elif c in CLEARED_SYMBOLS:
            content.append(PixelState.CLEARED)
        elif c == SYMBOLS.fence:
            continue
        else:
            content.append(PixelState.UNKNOWN)

    if len(content) < length:
        content.extend([PixelState.UNKNOWN] * (length - len(content)))
    elif len(content) > length:
        raise FormatError(ErrorKind.MALFORMED_PROGRESS,
                          f'line `{text.rstrip()}` is longer than given length {length}', line_no)

    return content


def parse_progress(lines: typing.Iterable[str], definition: PuzzleDefinition) -> FillGrid:
    grid = FillGrid(definition)
    y = 0
    for line_no, text in enumerate(lines, start=1):
        if not text.strip():
            continue
        if y >= grid.height:
            raise FormatError(ErrorKind.MALFORMED_PROGRESS, f'more than {grid.height} progress rows', line_no)
        for x, value in enumerate(parse_progress_line(text, grid.width, line_no)):
            grid.set_pixel(x, y, value)
        y += 1

    return grid


def format_progress_line(content: typing.Iterable[PixelState], fence: int = 0) -> str:
    parts = []
    for i, value in enumerate(content):
        if fence > 0 and i > 0 and i % fence == 0:
            parts.append(SYMBOLS.fence)

        if value is PixelState.FILLED:
            parts.append(SYMBOLS.filled)
        elif value is PixelState.CLEARED:
            parts.append(SYMBOLS.cleared)
        else:
            parts.append(SYMBOLS.unknown)

    return ''.join(parts)


def format_progress(grid: FillGrid, fence: int = 0) -> str:
    return '\n'.join(format_progress_line(grid.get_row(y), fence) for y in range(grid.height))


def _open_text(path):
    if path is None or path == '-':
        return contextlib.nullcontext(sys.stdin)
    return open(path, encoding='utf-8')


def load_puzzle(path) -> PuzzleDefinition:
    name = pathlib.Path(path).stem if path not in (None, '-') else 'stdin'
    logger.debug('loading puzzle %s', name)
    with _open_text(path) as f:
        return parse_puzzle(f, name)


def load_progress(path, definition: PuzzleDefinition) -> FillGrid:
    with _open_text(path) as f:
        return parse_progress(f, definition)


def create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Picross Puzzle Editor', allow_abbrev=False)
    parser.add_argument('--version', action='version', version=f'picross_editor {__version__}')
    parser.add_argument('puzzle_file',
                        help='a file contains the picross puzzle, see puzzles/*.txt for example'
                        ' (`-` to read from stdin)')
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument('-r', '--round-trip', action='store_true',
                        help='parse the puzzle and print it back in canonical form')
    action.add_argument('--check', metavar='PROGRESS_FILE',
                        help='check whether the marking in PROGRESS_FILE solves the puzzle; `@` or `o` for filled,'
                        ' `*` or `x` for cleared, `|` for border (optional), other character for unknown')
    parser.add_argument('--grid', type=int, default=0, metavar='SIZE',
                        help='if greater than 0, print fence every SIZE cells when printing progress (default: 0)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='print debug logs')

    return parser


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    parser = create_arg_parser()
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)
    if args.puzzle_file == '-' and args.check == '-':
        parser.error('puzzle file and progress file cannot both be read from stdin')

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    try:
        definition = load_puzzle(args.puzzle_file)
        if args.round_trip:
            sys.stdout.write(format_puzzle(definition))
            return 0

        pre_check(definition)
        grid = load_progress(args.check, definition)
    except (PicrossError, OSError, UnicodeDecodeError) as e:
        print(f'error: {e}', file=sys.stderr)
        return 1

    print(format_progress(grid, args.grid))
    print()
    if grid.is_solved():
        print('Solved!')
        return 0

    print('NOT Solved!!!')
    for line in grid.mismatched_lines():
        runs = extract_runs(grid.get_line_content(line))
        print(f'{line}: runs {runs} not match with clues {definition.get_line_clues(line)}')
    return 1


if __name__ == '__main__':
    sys.exit(main())

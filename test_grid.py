import unittest

import ddt

from picross_editor import *

FILL = PixelState.FILLED
NOFILL = PixelState.CLEARED
UNKNOWN = PixelState.UNKNOWN


def make_grid(width, height, row_clues, col_clues, pixels=None):
    grid = FillGrid(PuzzleDefinition('test', width, height, row_clues, col_clues))
    for i, value in enumerate(pixels or []):
        x, y = cell_coord(i, width, height)
        grid.set_pixel(x, y, value)
    return grid


@ddt.ddt
class TestCase(unittest.TestCase):
    def test_new_grid_is_unknown(self):
        grid = make_grid(3, 2, [(), ()], [(), (), ()])
        for y in range(2):
            for x in range(3):
                self.assertIs(grid.get_pixel(x, y), UNKNOWN)
        self.assertFalse(grid.is_decided())

    def test_set_and_get_pixel(self):
        grid = make_grid(3, 2, [(), ()], [(), (), ()])
        grid.set_pixel(2, 1, FILL)
        self.assertIs(grid.get_pixel(2, 1), FILL)
        self.assertIs(grid.get_pixel(1, 1), UNKNOWN)
        self.assertEqual(grid.get_row(1), [UNKNOWN, UNKNOWN, FILL])
        self.assertEqual(grid.get_column(2), [UNKNOWN, FILL])

    def test_set_pixel_rejects_non_state(self):
        grid = make_grid(1, 1, [()], [()])
        with self.assertRaises(TypeError):
            grid.set_pixel(0, 0, True)

    @ddt.data((-1, 0), (0, -1), (3, 0), (0, 2), (3, 2))
    def test_pixel_out_of_range(self, coord):
        grid = make_grid(3, 2, [(), ()], [(), (), ()])
        with self.assertRaises(OutOfRangeError) as cm:
            grid.get_pixel(*coord)
        self.assertEqual(cm.exception.kind, ErrorKind.OUT_OF_RANGE)
        with self.assertRaises(IndexError):
            grid.set_pixel(*coord, FILL)

    def test_line_out_of_range(self):
        grid = make_grid(3, 2, [(), ()], [(), (), ()])
        for bad in (-1, 2):
            with self.assertRaises(OutOfRangeError):
                grid.get_row(bad)
        for bad in (-1, 3):
            with self.assertRaises(OutOfRangeError):
                grid.get_column(bad)

    def test_rows_and_columns_are_copies(self):
        grid = make_grid(2, 2, [(), ()], [(), ()])
        grid.get_row(0)[0] = FILL
        grid.get_column(1)[0] = FILL
        self.assertIs(grid.get_pixel(0, 0), UNKNOWN)
        self.assertIs(grid.get_pixel(1, 0), UNKNOWN)

    def test_one_by_one(self):
        grid = make_grid(1, 1, [(1,)], [(1,)], [FILL])
        self.assertIs(grid.get_pixel(0, 0), FILL)
        self.assertIs(grid.get_column(0)[0], FILL)
        self.assertEqual(extract_runs(grid.get_column(0)), (1,))
        self.assertTrue(grid.is_solved())

    @ddt.data(NOFILL, UNKNOWN)
    def test_one_by_one_not_filled(self, value):
        grid = make_grid(1, 1, [(1,)], [(1,)], [value])
        self.assertFalse(grid.is_solved())

    def test_two_by_two(self):
        # @X
        # XX
        grid = make_grid(2, 2, [(1,), ()], [(1,), ()], [FILL, NOFILL, NOFILL, NOFILL])
        self.assertEqual(grid.get_column(0), [FILL, NOFILL])
        self.assertEqual(grid.get_column(1), [NOFILL, NOFILL])
        self.assertEqual(extract_runs(grid.get_column(0)), (1,))
        self.assertEqual(extract_runs(grid.get_column(1)), ())
        self.assertTrue(grid.is_solved())
        self.assertTrue(grid.is_decided())
        self.assertEqual(grid.mismatched_lines(), [])

    def test_solved_with_unknown_cells(self):
        grid = make_grid(2, 2, [(1,), ()], [(1,), ()], [FILL])
        self.assertTrue(grid.is_solved())
        self.assertFalse(grid.is_decided())

    def test_unknown_does_not_join_runs(self):
        grid = make_grid(3, 1, [(3,)], [(1,), (1,), (1,)], [FILL, UNKNOWN, FILL])
        self.assertFalse(grid.is_solved())
        grid.set_pixel(1, 0, FILL)
        self.assertTrue(grid.is_solved())

    def test_mismatched_lines(self):
        grid = make_grid(2, 2, [(1,), ()], [(1,), ()], [FILL, FILL])
        self.assertFalse(grid.is_solved())
        self.assertEqual(grid.mismatched_lines(), [Line(LineKind.ROW, 0), Line(LineKind.COL, 1)])
        self.assertEqual(str(grid.mismatched_lines()[1]), 'COL 2')

    def test_clear(self):
        grid = make_grid(1, 1, [(1,)], [(1,)], [FILL])
        grid.clear()
        self.assertIs(grid.get_pixel(0, 0), UNKNOWN)
        self.assertFalse(grid.is_solved())

    def test_format_progress(self):
        grid = make_grid(2, 2, [(1,), ()], [(1,), ()], [FILL, NOFILL, UNKNOWN, NOFILL])
        self.assertEqual(format_progress(grid), '@*\n.*')
        self.assertEqual(str(grid), '@*\n.*')

    def test_parse_progress(self):
        definition = PuzzleDefinition('test', 2, 2, [(1,), ()], [(1,), ()])
        grid = parse_progress(['@x', '', '**'], definition)
        self.assertEqual(grid.get_row(0), [FILL, NOFILL])
        self.assertEqual(grid.get_row(1), [NOFILL, NOFILL])
        self.assertTrue(grid.is_solved())

    def test_parse_progress_too_many_rows(self):
        definition = PuzzleDefinition('test', 1, 1, [(1,)], [(1,)])
        with self.assertRaises(FormatError) as cm:
            parse_progress(['@', '*'], definition)
        self.assertEqual(cm.exception.kind, ErrorKind.MALFORMED_PROGRESS)
        self.assertEqual(cm.exception.line_no, 2)


@ddt.ddt
class AddressingTestCase(unittest.TestCase):
    @ddt.unpack
    @ddt.data(
        (0, 0, 0),
        (1, 0, 1),
        (4, 0, None),
        (0, 1, 4),
        (3, 3, 15),
        (0, 4, None),
        (-1, 0, None),
        (0, -1, None),
    )
    def test_cell_index(self, x, y, expected):
        self.assertEqual(cell_index(x, y, 4, 4), expected)

    def test_cell_index_non_square(self):
        self.assertEqual(cell_index(2, 1, 3, 2), 5)
        self.assertIsNone(cell_index(1, 2, 3, 2))

    @ddt.data(0, 1, 5, 11)
    def test_cell_coord(self, index):
        x, y = cell_coord(index, 3, 4)
        self.assertEqual(cell_index(x, y, 3, 4), index)

    @ddt.data(-1, 12)
    def test_cell_coord_out_of_range(self, index):
        self.assertIsNone(cell_coord(index, 3, 4))

    @ddt.unpack
    @ddt.data(
        (1, 0, 0),
        (2, 1, 0),
        (20, 19, 0),
        (21, 0, 1),
        (42, 1, 2),
    )
    def test_thumbnail_position(self, n, column, row):
        unit = IMAGE_UNIT_SIZE
        self.assertEqual(thumbnail_position(n, unit), Point(unit * column, unit * row))
        self.assertEqual(thumbnail_position(n, 7, THUMBNAIL_COLUMNS), (7 * column, 7 * row))

    def test_thumbnail_position_other_layout(self):
        self.assertEqual(thumbnail_position(5, 10, columns_per_row=4), Point(0, 10))

    @ddt.data((0, 20), (1, 0))
    def test_thumbnail_position_out_of_contract(self, args):
        with self.assertRaises(ValueError):
            thumbnail_position(args[0], 16, args[1])

    def test_pointer_to_cell(self):
        unit = PIXEL_SIZE
        self.assertEqual(pointer_to_cell(unit // 2, unit // 2), Point(0, 0))
        self.assertEqual(pointer_to_cell(unit // 2 + unit * 3, unit // 2 + unit * 2), Point(3, 2))
        self.assertEqual(pointer_to_cell(unit - 1, unit), Point(0, 1))
        self.assertEqual(pointer_to_cell(25, 9, 10), Point(2, 0))


if __name__ == '__main__':
    unittest.main()

from salvo.board import Boat, Board, Knowledge, OpponentGrid
from salvo.placement import PlacementEngine
from salvo.render import (
    Color,
    draw_opponent_grid,
    draw_own_board,
    draw_placement,
    frame_rows,
    new_frame,
)


def test_placement_shows_candidate_and_blocked_overlap():
    board = Board(6, 6)
    engine = PlacementEngine(board, max_boats=4, long_press_ms=500)
    engine.begin([(2, 2)])
    # confirm the first boat where it was centred
    engine.advance(0, 0, True, 0)
    engine.advance(0, 0, False, 600)
    frame = new_frame(6, 6)
    draw_placement(frame, engine)
    # second boat is centred on top of the first one
    assert frame[2, 2] == Color.BLOCKED
    assert (frame == Color.BLOCKED).sum() == 2

    engine.advance(0, 2, False, 700)
    frame = new_frame(6, 6)
    draw_placement(frame, engine)
    assert frame[2, 2] == Color.BOAT and frame[3, 2] == Color.BOAT
    assert frame[2, 4] == Color.CANDIDATE and frame[3, 4] == Color.CANDIDATE


def test_own_board_layers():
    board = Board(4, 4)
    boat = Boat(2, 0, 0)
    board.boats.append(boat)
    board.place(boat)
    board.hit_received[1, 0] = True
    frame = new_frame(4, 4)
    draw_own_board(frame, board, opponent_aim=(3, 3), highlight=(2, 2))
    assert frame[0, 0] == Color.BOAT
    assert frame[1, 0] == Color.HIT
    assert frame[3, 3] == Color.OPPONENT_CURSOR
    assert frame[2, 2] == Color.MISS


def test_opponent_grid_with_cursor():
    grid = OpponentGrid(3, 3)
    grid.mark(0, 0, Knowledge.MISS)
    grid.mark(1, 0, Knowledge.HIT)
    grid.mark(2, 0, Knowledge.SUNK)
    frame = new_frame(3, 3)
    draw_opponent_grid(frame, grid, cursor=(1, 1))
    assert list(frame[:, 0]) == [Color.MISS, Color.HIT, Color.SUNK]
    assert frame[1, 1] == Color.CURSOR
    assert frame[2, 2] == Color.OFF


def test_frame_rows_are_indexed_by_y():
    frame = new_frame(3, 2)
    frame[2, 0] = Color.HIT
    frame[0, 1] = Color.CURSOR
    assert frame_rows(frame) == [". . X", "@ . ."]

"""
Property tests for whole games.

Plays many seeded random games to completion and checks after every
action that:
1. All 108 cards are accounted for, each exactly once
2. The turn pointer names a seated player
3. The face-up card and current color/value agree
4. Players leaving mid-game never break the above
"""

import random

import pytest

from cards import PLAYABLE_COLORS
from constants import DECK_SIZE
from errors import DeckExhausted, GameError
from game import Game, GamePhase, Player
from rules import is_valid_move

MAX_ACTIONS = 3000


def check_invariants(game: Game) -> None:
    ids = [c.id for c in game.deck.cards] + [c.id for c in game.discard_pile]
    for player in game.players:
        ids.extend(c.id for c in player.hand)
    assert len(ids) == DECK_SIZE
    assert len(set(ids)) == DECK_SIZE

    if game.phase == GamePhase.PLAYING:
        assert 0 <= game.current_player_index < len(game.players)
        assert game.direction in (1, -1)
        top = game.discard_top()
        assert game.current_value == top.value
        if top.is_wild:
            if game.pending_color_player_id is None:
                assert game.current_color == top.chosen_color
            else:
                assert game.pending_color_player_id == game.current_player().id
        else:
            assert game.current_color == top.color

    for card in game.deck.cards:
        assert card.chosen_color is None


def take_turn(game: Game, rng: random.Random) -> None:
    """One action by the current player, chosen at random among legal ones."""
    player = game.current_player()

    if game.pending_color_player_id == player.id:
        game.choose_color(player.id, rng.choice(PLAYABLE_COLORS).value)
        return

    playable = [
        i for i, card in enumerate(player.hand)
        if is_valid_move(card, game.current_color, game.current_value)
    ]
    if playable:
        index = rng.choice(playable)
        color = rng.choice(PLAYABLE_COLORS).value if rng.random() < 0.5 else None
        game.play_card(player.id, index, color)
    else:
        game.draw_card(player.id)


def play_out(seed: int, num_players: int, leave_chance: float = 0.0) -> Game:
    rng = random.Random(seed)
    game = Game(rng=random.Random(seed))
    for i in range(num_players):
        game.add_player(Player(id=f"p{i}", name=f"Player {i}"))
    game.start_game()
    check_invariants(game)

    for _ in range(MAX_ACTIONS):
        if game.phase != GamePhase.PLAYING:
            break
        if leave_chance and rng.random() < leave_chance:
            game.remove_player(rng.choice(game.players).id)
        else:
            try:
                take_turn(game, rng)
            except DeckExhausted:
                # Every card is in a hand; nothing left to do
                break
        check_invariants(game)
    return game


@pytest.mark.parametrize("seed", range(40))
def test_random_games_keep_invariants(seed):
    num_players = 2 + seed % 9
    game = play_out(seed, num_players)
    if game.phase == GamePhase.ENDED:
        winner = game.get_player(game.winner_id)
        assert winner.hand == []
        assert game.end_reason == "hand_emptied"


@pytest.mark.parametrize("seed", range(20))
def test_random_games_with_leavers(seed):
    game = play_out(seed, 6, leave_chance=0.02)
    if game.phase == GamePhase.ENDED and game.end_reason == "players_left":
        assert len(game.players) == 1
        assert game.winner_id == game.players[0].id


@pytest.mark.parametrize("seed", range(10))
def test_rejected_actions_leave_state_alone(seed):
    """Throw illegal actions at a running game and compare before/after."""
    rng = random.Random(seed)
    game = Game(rng=random.Random(seed))
    for i in range(4):
        game.add_player(Player(id=f"p{i}", name=f"Player {i}"))
    game.start_game()

    for _ in range(200):
        if game.phase != GamePhase.PLAYING:
            break
        current = game.current_player()
        other = next(p for p in game.players if p.id != current.id)
        before = (
            [c.id for c in game.deck.cards],
            [c.id for c in game.discard_pile],
            [[c.id for c in p.hand] for p in game.players],
            game.current_player_index,
            game.direction,
            game.current_color,
            game.pending_color_player_id,
        )

        attempts = [
            lambda: game.play_card(other.id, 0),
            lambda: game.draw_card(other.id),
            lambda: game.play_card(current.id, len(current.hand)),
            lambda: game.choose_color(other.id, "red"),
        ]
        for attempt in attempts:
            with pytest.raises(GameError):
                attempt()

        after = (
            [c.id for c in game.deck.cards],
            [c.id for c in game.discard_pile],
            [[c.id for c in p.hand] for p in game.players],
            game.current_player_index,
            game.direction,
            game.current_color,
            game.pending_color_player_id,
        )
        assert after == before
        take_turn(game, rng)

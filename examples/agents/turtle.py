# Turtle: only attacks with a full stack or near-certain odds, and keeps
# a running tally of its attacks in persistent storage.
#
# Run it against the built-ins:
#   python game.py --agent-file examples/agents/turtle.py --bots 3 --ai easy,hard

tally = api.load("tally") or {"attacks": 0, "turns": 0}


def safe_targets(tile):
    for target in api.adjacent_tiles(tile.x, tile.y):
        if target.owner == api.my_id:
            continue
        if tile.dice == api.max_dice or api.win_probability(tile.dice, target.dice) > 0.8:
            yield target


for tile in sorted(api.my_tiles(), key=lambda t: t.dice, reverse=True):
    for target in safe_targets(tile):
        current = api.tile_at(tile.x, tile.y)
        if current.owner != api.my_id or current.dice <= 1:
            break
        result = api.attack(tile.x, tile.y, target.x, target.y)
        if result.success:
            tally["attacks"] += 1
        if result.expected_win:
            break

tally["turns"] += 1
api.log("turn", api.turn, "attacks so far", tally["attacks"])
api.save("tally", tally)
api.end_turn()

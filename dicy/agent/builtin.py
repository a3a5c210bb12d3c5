"""Built-in agent strategies.

Each strategy is a plain agent program written against the sandbox API,
exactly like a user-authored one; built-ins get no extra privileges.
"""

from typing import Dict

from ..models.agent import AgentDefinition

EASY_CODE = '''
# Easy: attack whenever we have at least as many dice
for tile in api.my_tiles():
    if tile.dice <= 1:
        continue
    for target in api.adjacent_tiles(tile.x, tile.y):
        current = api.tile_at(tile.x, tile.y)
        if current.dice <= 1 or current.owner != api.my_id:
            break
        if target.owner != api.my_id and current.dice >= target.dice:
            api.attack(tile.x, tile.y, target.x, target.y)

api.end_turn()
'''.strip()

MEDIUM_CODE = '''
# Medium: score every move, play the best first
def evaluate(source, target):
    diff = source.dice - target.dice
    if diff >= 2:
        return 100 + diff
    if source.dice == api.max_dice:
        return 90 + diff
    if diff > 0:
        return 50 + diff
    return -1


moves = []
for tile in api.my_tiles():
    if tile.dice <= 1:
        continue
    for target in api.adjacent_tiles(tile.x, tile.y):
        if target.owner != api.my_id:
            score = evaluate(tile, target)
            if score > 0:
                moves.append((score, tile, target))

moves.sort(key=lambda move: move[0], reverse=True)

for score, source, target in moves:
    current = api.tile_at(source.x, source.y)
    if current and current.dice > 1 and current.owner == api.my_id:
        api.attack(source.x, source.y, target.x, target.y)

api.end_turn()
'''.strip()

HARD_CODE = '''
# Hard: exact odds, frontier awareness, never takes long shots
def evaluate(source, target):
    probability = api.win_probability(source.dice, target.dice)
    if probability < 0.4:
        return -100

    score = (source.dice - target.dice) * 10 + probability * 50
    if source.dice == api.max_dice:
        score += 30
    if target.dice == 1:
        score += 20

    beyond = api.adjacent_tiles(target.x, target.y)
    score += 5 * len([n for n in beyond if n.owner != api.my_id and n.owner != target.owner])

    exposed = [n for n in api.adjacent_tiles(source.x, source.y) if n.owner != api.my_id]
    score -= 3 * len(exposed)

    outlook = api.simulate_attack(source.x, source.y, target.x, target.y)
    if outlook.success:
        score += 2 * (outlook.my_region - api.largest_connected_region(api.my_id))
    return score


moves = []
for tile in api.my_tiles():
    if tile.dice <= 1:
        continue
    for target in api.adjacent_tiles(tile.x, tile.y):
        if target.owner != api.my_id:
            score = evaluate(tile, target)
            if score > 0:
                moves.append((score, tile, target))

moves.sort(key=lambda move: move[0], reverse=True)

for score, source, target in moves:
    current = api.tile_at(source.x, source.y)
    defender = api.tile_at(target.x, target.y)
    if not current or current.dice <= 1 or current.owner != api.my_id:
        continue
    if defender.owner == api.my_id:
        continue
    result = api.attack(source.x, source.y, target.x, target.y)
    if not result.success and result.reason == "max_moves":
        break

api.end_turn()
'''.strip()

ADAPTIVE_CODE = '''
# Adaptive: tunes its aggression across games from territory trends
stats = api.load("stats") or {"aggression": 0.5}
game = api.load("current_game") or {"attacks": 0, "expected_wins": 0, "territory": 0}
aggression = stats["aggression"]
threshold = 0.6 - aggression * 0.3


def evaluate(source, target):
    probability = api.win_probability(source.dice, target.dice)
    if probability < threshold:
        return -1
    score = probability * 100 + (source.dice - target.dice) * 10
    if source.dice == api.max_dice:
        score += 50
    if target.dice == 1:
        score += 30 * aggression
    enemies = [n for n in api.adjacent_tiles(target.x, target.y) if n.owner != api.my_id]
    score += len(enemies) * 10 * aggression
    return score


moves = []
for tile in api.my_tiles():
    if tile.dice <= 1:
        continue
    for target in api.adjacent_tiles(tile.x, tile.y):
        if target.owner != api.my_id:
            score = evaluate(tile, target)
            if score > 0:
                moves.append((score, tile, target))

moves.sort(key=lambda move: move[0], reverse=True)

max_attacks = int(5 + aggression * 20)
made = 0
for score, source, target in moves:
    if made >= max_attacks:
        break
    current = api.tile_at(source.x, source.y)
    if current and current.dice > 1 and current.owner == api.my_id:
        result = api.attack(source.x, source.y, target.x, target.y)
        if result.success:
            made += 1
            game["attacks"] += 1
            if result.expected_win:
                game["expected_wins"] += 1

territory = len(api.my_tiles())
if game["territory"]:
    if territory > game["territory"]:
        stats["aggression"] = min(1.0, aggression + 0.02)
    elif territory < game["territory"]:
        stats["aggression"] = max(0.1, aggression - 0.01)
game["territory"] = territory

api.save("stats", stats)
api.save("current_game", game)
api.end_turn()
'''.strip()


BUILTIN_AGENTS: Dict[str, AgentDefinition] = {
    agent.id: agent
    for agent in (
        AgentDefinition(
            id="easy",
            name="Easy",
            description="Attacks whenever it has at least as many dice",
            code=EASY_CODE,
            builtin=True,
        ),
        AgentDefinition(
            id="medium",
            name="Medium",
            description="Scores every move and plays the best ones first",
            code=MEDIUM_CODE,
            builtin=True,
        ),
        AgentDefinition(
            id="hard",
            name="Hard",
            description="Uses exact win odds and territory outlook, avoids risky attacks",
            code=HARD_CODE,
            builtin=True,
        ),
        AgentDefinition(
            id="adaptive",
            name="Adaptive",
            description="Adjusts its aggression across games using persistent storage",
            code=ADAPTIVE_CODE,
            builtin=True,
        ),
    )
}

from flask import Flask, request, jsonify
from flask_cors import CORS
from actions import apply_action, legal_actions_for_faction
from evaluation import EvaluationWeights
from mcts import MonteCarloTreeSearch, SearchConfig
from models import Action
from state import SimState, load_config
from typing import Any, Dict, Tuple
import random

app = Flask(__name__)
CORS(app)  # Enable CORS for all routes

# Stateless: every request carries its own snapshot, nothing is stored between calls.


def _parse_request() -> Tuple[Dict[str, Any], SimState]:
    """Read the JSON body and its snapshot. Raises ValueError on bad input."""
    data = request.get_json(silent=True)
    if data is None:
        raise ValueError('Invalid JSON data')
    if 'snapshot' not in data:
        raise ValueError('Request must include a snapshot')
    return data, SimState.from_snapshot(data['snapshot'])


def _require_faction(data: Dict[str, Any]) -> str:
    faction = data.get('faction')
    if not faction:
        raise ValueError('Request must include a faction')
    return str(faction)


def _optional_number(data: Dict[str, Any], key: str, cast):
    """Coerce an optional numeric field. Raises ValueError when it is not a number."""
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f'{key} must be a number')
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f'{key} must be a number') from e


@app.route('/api/decide', methods=['POST'])
def decide():
    """Run the planner on a snapshot and return one action for the faction."""
    try:
        data, state = _parse_request()
        faction = _require_faction(data)

        config = load_config()
        try:
            search_config = SearchConfig.from_config(
                config['mcts'],
                time_budget_ms=_optional_number(data, 'time_budget_ms', float),
                max_iterations=_optional_number(data, 'max_iterations', int),
                seed=_optional_number(data, 'seed', int),
            )
        except TypeError as e:
            raise ValueError(f'Invalid search settings: {e}') from e

        search = MonteCarloTreeSearch(
            faction,
            config=search_config,
            weights=EvaluationWeights.from_config(config['evaluation']),
        )
        action = search.find_best_action(state)
        stats = search.last_stats

        return jsonify({
            'action': action.to_dict() if action else None,
            'game_over': state.is_game_over(),
            'winner': state.winner(),
            'stats': {
                'iterations': stats.iterations,
                'elapsed_ms': stats.elapsed_ms,
                'stopped_by': stats.stopped_by,
            },
        })

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to decide action: {str(e)}'}), 500


@app.route('/api/legal-actions', methods=['POST'])
def legal_actions():
    """List the legal actions of a faction in a snapshot."""
    try:
        data, state = _parse_request()
        faction = _require_faction(data)
        actions = legal_actions_for_faction(state, faction)
        return jsonify({'actions': [a.to_dict() for a in actions]})

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to list actions: {str(e)}'}), 500


@app.route('/api/apply', methods=['POST'])
def apply():
    """Apply an action to a snapshot and return the resulting snapshot."""
    try:
        data, state = _parse_request()
        if 'action' not in data:
            return jsonify({'error': 'Request must include an action'}), 400
        action = Action.from_dict(data['action'])

        rng = random.Random(_optional_number(data, 'seed', int))
        result = apply_action(state, action, rng)

        return jsonify({
            'applied': result.applied,
            'reason': result.reason,
            'combat': result.combat.to_dict() if result.combat else None,
            'turn_advanced': result.turn_advanced,
            'snapshot': state.to_snapshot(),
            'game_over': state.is_game_over(),
            'winner': state.winner(),
        })

    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': f'Failed to apply action: {str(e)}'}), 500


if __name__ == '__main__':
    app.run(debug=True, port=5000)

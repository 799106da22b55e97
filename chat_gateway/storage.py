import json, os
from typing import Dict, Optional

STATE_FILE = "gateway_state.json"


def state_path(state_dir: Optional[str] = None) -> Optional[str]:
    """Path of the JSON state file, or None when STATE_DIR is not set."""
    state_dir = state_dir or os.getenv("STATE_DIR")
    if not state_dir:
        return None
    return os.path.join(state_dir, STATE_FILE)


def load_state(path: str) -> Dict:
    if os.path.exists(path):
        with open(path, "r") as f:
            return json.load(f)
    return {}


def save_state(path: str, d: Dict):
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w") as f:
        json.dump(d, f, indent=2)


def get_response_ids(path: str) -> Dict[str, str]:
    """Stored continuity tokens: {conversation_id: response_id}."""
    return load_state(path).get("response_ids", {})


def set_response_ids(path: str, response_ids: Dict[str, str]):
    state = load_state(path)
    state["response_ids"] = response_ids
    save_state(path, state)

"""Tree engine: structural mutations, selection, clipboard and numbering."""

from .mutations import (
    collect_subtree_ids,
    delete_cards,
    index_of,
    insert_card,
    insert_subtrees,
    merge_cards,
    move_cards,
    normalize_card_order,
    rebuild_links,
    resolve_placement,
    set_trace_flags,
    subtree_end,
    topmost_ids,
    update_card,
)
from .selection import (
    Selection,
    prune_selection,
    select_range,
    select_single,
    selection_roots,
    toggle_selection,
)
from .clipboard import PasteResult, copy_subtrees, materialize, paste_subtrees
from .numbering import (
    find_max_card_number,
    generate_card_ids,
    generate_next_card_id,
    get_most_common_prefix,
    is_card_id_duplicate,
    parse_card_id,
)

__all__ = [
    "collect_subtree_ids",
    "delete_cards",
    "index_of",
    "insert_card",
    "insert_subtrees",
    "merge_cards",
    "move_cards",
    "normalize_card_order",
    "rebuild_links",
    "resolve_placement",
    "set_trace_flags",
    "subtree_end",
    "topmost_ids",
    "update_card",
    "Selection",
    "prune_selection",
    "select_range",
    "select_single",
    "selection_roots",
    "toggle_selection",
    "PasteResult",
    "copy_subtrees",
    "materialize",
    "paste_subtrees",
    "find_max_card_number",
    "generate_card_ids",
    "generate_next_card_id",
    "get_most_common_prefix",
    "is_card_id_duplicate",
    "parse_card_id",
]

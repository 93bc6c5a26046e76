"""
Workspace manager for cardtree.

This module owns all editing state: panels, open tabs, the file-to-panel
bindings, one undo journal per tab, the shared clipboard and the queue of
card versions waiting for the history recorder. Every command validates
first and then replaces the affected tab wholesale, so no caller can observe
a half-applied change. History notifications run after the change is
committed; their failures are logged and never undo the change.
"""

import logging
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import config
from ..history import BaseHistoryRecorder
from ..journal import UndoJournal
from ..models import (
    Card,
    CardHistory,
    CardHistoryOperation,
    CardKind,
    CardPatch,
    CardStatus,
    CardVersion,
    CardVersionDiff,
    ClipboardNode,
    DisplayMode,
    InsertPosition,
    MergeOptions,
    OpenStatus,
    OpenTabOutcome,
    Panel,
    RenameOutcome,
    Tab,
    next_card_status,
    utc_now,
)
from ..tree import (
    Selection,
    copy_subtrees,
    delete_cards,
    generate_next_card_id,
    insert_card,
    is_card_id_duplicate,
    merge_cards,
    move_cards,
    normalize_card_order,
    paste_subtrees,
    prune_selection,
    select_range,
    select_single,
    selection_roots,
    set_trace_flags,
    toggle_selection,
    topmost_ids,
    update_card,
)


class UnknownTabError(LookupError):
    """Raised when a command names a tab that is not open."""


class UnknownPanelError(LookupError):
    """Raised when a command names a panel that does not exist."""


HistoryEntry = Tuple[str, CardVersion]


class WorkspaceManager:
    """
    Single owner of the editing state of all panels and tabs.
    """

    def __init__(self, history_recorder: Optional[BaseHistoryRecorder] = None,
                 id_factory: Optional[Callable[[], str]] = None,
                 max_undo_depth: Optional[int] = None):
        """
        Initialize an empty workspace.

        Args:
            history_recorder: Receives committed card versions (optional)
            id_factory: Returns a fresh unique id per call (defaults to uuid4)
            max_undo_depth: Undo entries kept per tab (defaults to journal.max_depth)
        """
        self.history_recorder = history_recorder
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.max_undo_depth = max_undo_depth if max_undo_depth is not None else config.undo_depth

        self._panels: Dict[str, Panel] = {}
        self._tabs: Dict[str, Tab] = {}
        self._file_bindings: Dict[str, str] = {}
        self._journals: Dict[str, UndoJournal] = {}
        self._pending_history: Dict[str, List[HistoryEntry]] = {}
        self._clipboard: List[ClipboardNode] = []

    # ------------------------------------------------------------------
    # Accessors

    @property
    def panels(self) -> List[Panel]:
        return list(self._panels.values())

    @property
    def tabs(self) -> List[Tab]:
        return list(self._tabs.values())

    @property
    def file_bindings(self) -> Dict[str, str]:
        """Copy of the file name to panel id map."""
        return dict(self._file_bindings)

    @property
    def clipboard(self) -> List[ClipboardNode]:
        return list(self._clipboard)

    def get_panel(self, panel_id: str) -> Panel:
        panel = self._panels.get(panel_id)
        if panel is None:
            raise UnknownPanelError(f"Unknown panel: {panel_id}")
        return panel

    def get_tab(self, tab_id: str) -> Tab:
        tab = self._tabs.get(tab_id)
        if tab is None:
            raise UnknownTabError(f"Unknown tab: {tab_id}")
        return tab

    def get_active_tab(self, panel_id: str) -> Optional[Tab]:
        panel = self.get_panel(panel_id)
        return self._tabs.get(panel.active_tab_id) if panel.active_tab_id else None

    def find_tab_by_file(self, file_name: str) -> Optional[Tab]:
        """Return the tab bound to a file name, if it is open."""
        for tab in self._tabs.values():
            if tab.file_name == file_name:
                return tab
        return None

    def journal(self, tab_id: str) -> UndoJournal:
        self.get_tab(tab_id)
        return self._journals[tab_id]

    def can_undo(self, tab_id: str) -> bool:
        return self.journal(tab_id).can_undo

    def can_redo(self, tab_id: str) -> bool:
        return self.journal(tab_id).can_redo

    def pending_history(self, tab_id: str) -> List[HistoryEntry]:
        """Card versions queued for a tab that has no file name yet."""
        return list(self._pending_history.get(tab_id, []))

    # ------------------------------------------------------------------
    # Panels and tabs

    def create_panel(self, panel_id: Optional[str] = None) -> Panel:
        """
        Create an empty leaf panel.

        Returns the existing panel if the id is already in use.
        """
        panel_id = panel_id or self.id_factory()
        if panel_id in self._panels:
            return self._panels[panel_id]
        panel = Panel(id=panel_id)
        self._panels[panel_id] = panel
        logging.info(f"Created panel {panel_id}")
        return panel

    def _initial_expanded(self, cards: Sequence[Card]) -> List[str]:
        if not config.expand_on_open:
            return []
        return [card.id for card in cards if card.child_ids]

    def _add_tab(self, tab: Tab) -> None:
        panel = self.create_panel(tab.panel_id)
        self._tabs[tab.id] = tab
        self._journals[tab.id] = UndoJournal(tab.id, self.max_undo_depth)
        if tab.file_name is not None:
            self._file_bindings[tab.file_name] = tab.panel_id
        self._panels[panel.id] = panel.model_copy(update={
            "tab_ids": panel.tab_ids + [tab.id],
            "active_tab_id": tab.id,
        })

    def open_tab(self, panel_id: str, file_name: str, cards: Iterable[Card]) -> OpenTabOutcome:
        """
        Open a file in a panel.

        A file open in another panel is refused. A file already open in the
        same panel is reactivated and its contents refreshed without touching
        its undo history. Incoming cards are normalized before use.

        Args:
            panel_id: Target panel (created if missing)
            file_name: Backing file name
            cards: Cards as loaded from the file, in any order

        Returns:
            OpenTabOutcome with status opened, activated or denied
        """
        bound_panel = self._file_bindings.get(file_name)
        if bound_panel is not None and bound_panel != panel_id:
            reason = f"'{file_name}' is already open in panel {bound_panel}"
            logging.info(f"Denied opening {file_name} in panel {panel_id}: {reason}")
            return OpenTabOutcome(
                status=OpenStatus.DENIED,
                panel_id=panel_id,
                conflicting_panel_id=bound_panel,
                reason=reason,
            )

        normalized = normalize_card_order(cards)
        existing = self.find_tab_by_file(file_name)
        if existing is not None and existing.panel_id == panel_id:
            self._refresh_tab(existing, normalized)
            self.activate_tab(existing.id)
            logging.info(f"Reactivated {file_name} in panel {panel_id}")
            return OpenTabOutcome(status=OpenStatus.ACTIVATED, panel_id=panel_id, tab_id=existing.id)

        tab = Tab(
            id=self.id_factory(),
            panel_id=panel_id,
            file_name=file_name,
            cards=normalized,
            expanded_card_ids=self._initial_expanded(normalized),
            display_mode=DisplayMode(config.display_mode),
        )
        self._add_tab(tab)
        logging.info(f"Opened {file_name} ({len(normalized)} cards) in panel {panel_id}")
        return OpenTabOutcome(status=OpenStatus.OPENED, panel_id=panel_id, tab_id=tab.id)

    def _refresh_tab(self, tab: Tab, cards: List[Card]) -> Tab:
        existing = {card.id for card in cards}
        expanded = [card_id for card_id in tab.expanded_card_ids if card_id in existing]
        selection = prune_selection(cards, Selection(tab.selected_card_ids, tab.anchor_card_id))
        refreshed = tab.model_copy(update={
            "cards": cards,
            "expanded_card_ids": expanded or self._initial_expanded(cards),
            "selected_card_ids": selection.card_ids,
            "anchor_card_id": selection.anchor_id,
            "editing_card_id": tab.editing_card_id if tab.editing_card_id in existing else None,
            "dirty_card_ids": [],
            "is_dirty": False,
        })
        self._tabs[tab.id] = refreshed
        return refreshed

    def create_untitled_tab(self, panel_id: str, cards: Optional[Iterable[Card]] = None) -> str:
        """
        Open a new untitled tab. Untitled tabs are always dirty and never
        bound to a file name.

        Returns:
            The new tab id
        """
        normalized = normalize_card_order(cards or [])
        tab = Tab(
            id=self.id_factory(),
            panel_id=panel_id,
            cards=normalized,
            expanded_card_ids=self._initial_expanded(normalized),
            is_dirty=True,
            display_mode=DisplayMode(config.display_mode),
        )
        self._add_tab(tab)
        logging.info(f"Created untitled tab {tab.id} in panel {panel_id}")
        return tab.id

    def activate_tab(self, tab_id: str) -> bool:
        tab = self.get_tab(tab_id)
        panel = self.get_panel(tab.panel_id)
        if panel.active_tab_id == tab_id:
            return False
        self._panels[panel.id] = panel.model_copy(update={"active_tab_id": tab_id})
        return True

    def close_tab(self, tab_id: str) -> bool:
        """
        Close a tab, release its file binding and drop its journal and any
        history still waiting for a file name.

        Returns:
            False if the tab was not open
        """
        tab = self._tabs.pop(tab_id, None)
        if tab is None:
            return False

        if tab.file_name is not None and self._file_bindings.get(tab.file_name) == tab.panel_id:
            del self._file_bindings[tab.file_name]
        self._journals.pop(tab_id, None)
        dropped = self._pending_history.pop(tab_id, [])
        if dropped:
            logging.info(f"Discarded {len(dropped)} pending history entries of closed tab {tab_id}")

        panel = self._panels.get(tab.panel_id)
        if panel is not None:
            position = panel.tab_ids.index(tab_id)
            tab_ids = [other for other in panel.tab_ids if other != tab_id]
            active = panel.active_tab_id
            if active == tab_id:
                active = tab_ids[min(position, len(tab_ids) - 1)] if tab_ids else None
            self._panels[panel.id] = panel.model_copy(update={"tab_ids": tab_ids, "active_tab_id": active})

        logging.info(f"Closed tab {tab_id} ({tab.file_name or 'untitled'})")
        return True

    def close_panel(self, panel_id: str) -> bool:
        """Close every tab of a panel and remove the panel."""
        panel = self._panels.get(panel_id)
        if panel is None:
            return False
        for tab_id in list(panel.tab_ids):
            self.close_tab(tab_id)
        del self._panels[panel_id]
        logging.info(f"Closed panel {panel_id}")
        return True

    def rename_tab_file(self, tab_id: str, file_name: str) -> RenameOutcome:
        """
        Bind a tab to a file name (save-as).

        An untitled tab becomes bound; a bound tab moves to the new name and
        releases the old one. Names held by another tab are refused. Queued
        history is flushed once the tab has a name.
        """
        tab = self.get_tab(tab_id)
        if not file_name:
            return RenameOutcome(success=False, tab_id=tab_id, reason="File name must not be empty")
        if tab.file_name == file_name:
            return RenameOutcome(success=True, tab_id=tab_id, file_name=file_name)

        holder = self.find_tab_by_file(file_name)
        bound_panel = self._file_bindings.get(file_name)
        if (holder is not None and holder.id != tab_id) or (bound_panel is not None and bound_panel != tab.panel_id):
            reason = f"'{file_name}' is already open in panel {bound_panel or holder.panel_id}"
            logging.info(f"Denied renaming tab {tab_id}: {reason}")
            return RenameOutcome(success=False, tab_id=tab_id, file_name=tab.file_name, reason=reason)

        if tab.file_name is not None:
            self._file_bindings.pop(tab.file_name, None)
        self._file_bindings[file_name] = tab.panel_id
        self._tabs[tab_id] = tab.model_copy(update={"file_name": file_name})
        logging.info(f"Tab {tab_id} bound to {file_name}")

        self._flush_history(tab_id)
        return RenameOutcome(success=True, tab_id=tab_id, file_name=file_name)

    def mark_saved(self, tab_id: str) -> bool:
        """Clear dirty state after the file service saved the tab. Untitled tabs stay dirty."""
        tab = self.get_tab(tab_id)
        if tab.file_name is None:
            return False
        self._tabs[tab_id] = tab.model_copy(update={"is_dirty": False, "dirty_card_ids": []})
        return True

    # ------------------------------------------------------------------
    # Selection and view state

    def _set_selection(self, tab: Tab, selection: Optional[Selection]) -> bool:
        if selection is None:
            return False
        self._tabs[tab.id] = tab.model_copy(update={
            "selected_card_ids": list(selection.card_ids),
            "anchor_card_id": selection.anchor_id,
        })
        return True

    def _current_selection(self, tab: Tab) -> Selection:
        return Selection(list(tab.selected_card_ids), tab.anchor_card_id)

    def select_card(self, tab_id: str, card_id: str) -> bool:
        tab = self.get_tab(tab_id)
        return self._set_selection(tab, select_single(tab.cards, card_id))

    def toggle_card_selection(self, tab_id: str, card_id: str) -> bool:
        tab = self.get_tab(tab_id)
        return self._set_selection(tab, toggle_selection(tab.cards, self._current_selection(tab), card_id))

    def select_card_range(self, tab_id: str, card_id: str) -> bool:
        tab = self.get_tab(tab_id)
        return self._set_selection(tab, select_range(tab.cards, self._current_selection(tab), card_id))

    def clear_selection(self, tab_id: str) -> None:
        self._set_selection(self.get_tab(tab_id), Selection())

    def get_selection_roots(self, tab_id: str) -> List[str]:
        tab = self.get_tab(tab_id)
        return selection_roots(tab.cards, tab.selected_card_ids)

    def toggle_expanded(self, tab_id: str, card_id: str) -> Optional[bool]:
        """
        Expand or collapse a card.

        Returns:
            The new expanded state, or None if the card does not exist
        """
        tab = self.get_tab(tab_id)
        if tab.find_card(card_id) is None:
            return None
        if card_id in tab.expanded_card_ids:
            expanded = [other for other in tab.expanded_card_ids if other != card_id]
        else:
            expanded = tab.expanded_card_ids + [card_id]
        self._tabs[tab_id] = tab.model_copy(update={"expanded_card_ids": expanded})
        return card_id in expanded

    def set_editing_card(self, tab_id: str, card_id: Optional[str]) -> bool:
        """Move the editing cursor to a card, or clear it with None."""
        tab = self.get_tab(tab_id)
        if card_id is not None and tab.find_card(card_id) is None:
            return False
        self._tabs[tab_id] = tab.model_copy(update={"editing_card_id": card_id})
        return True

    def set_display_mode(self, tab_id: str, mode) -> None:
        tab = self.get_tab(tab_id)
        self._tabs[tab_id] = tab.model_copy(update={"display_mode": DisplayMode(mode)})

    # ------------------------------------------------------------------
    # Card mutations

    def _resolve_anchor(self, tab: Tab, anchor_id: Optional[str]) -> Tuple[bool, Optional[str]]:
        # explicit id, else last selected, else last card
        if anchor_id is not None:
            return tab.find_card(anchor_id) is not None, anchor_id
        if tab.anchor_card_id is not None and tab.find_card(tab.anchor_card_id) is not None:
            return True, tab.anchor_card_id
        if tab.cards:
            return True, tab.cards[-1].id
        return True, None

    def _commit_mutation(self, tab: Tab, operation: str, description: str,
                         cards: List[Card], touched_ids: Iterable[str] = (),
                         selection: Optional[Selection] = None,
                         expand_id: Optional[str] = None) -> Tab:
        self._journals[tab.id].record(operation, tab.cards, description)

        existing = {card.id for card in cards}
        if selection is None:
            selection = prune_selection(cards, self._current_selection(tab))
        dirty = [card_id for card_id in dict.fromkeys(list(tab.dirty_card_ids) + list(touched_ids))
                 if card_id in existing]
        expanded = [card_id for card_id in tab.expanded_card_ids if card_id in existing]
        if expand_id is not None and expand_id in existing and expand_id not in expanded:
            expanded.append(expand_id)

        committed = tab.model_copy(update={
            "cards": cards,
            "is_dirty": True,
            "dirty_card_ids": dirty,
            "selected_card_ids": list(selection.card_ids),
            "anchor_card_id": selection.anchor_id,
            "expanded_card_ids": expanded,
            "editing_card_id": tab.editing_card_id if tab.editing_card_id in existing else None,
        })
        self._tabs[tab.id] = committed
        logging.info(f"{description} (tab {tab.id})")
        return committed

    def insert_card(self, tab_id: str, position=InsertPosition.AFTER, anchor_id: Optional[str] = None,
                    title: str = "", body: str = "", kind=CardKind.PARAGRAPH,
                    status=CardStatus.DRAFT) -> Optional[str]:
        """
        Insert a new card before, after or as the last child of an anchor.

        The anchor defaults to the last selected card, then to the last card.
        The new card is selected; a parent receiving a child is expanded.

        Returns:
            The new card id, or None when the anchor cannot be resolved
        """
        tab = self.get_tab(tab_id)
        position = InsertPosition(position)
        resolved, anchor = self._resolve_anchor(tab, anchor_id)
        if not resolved:
            return None

        now = utc_now()
        card = Card(
            id=self.id_factory(),
            card_id=generate_next_card_id(tab.cards, config.card_id_prefix, config.card_id_digits),
            title=title,
            body=body,
            kind=kind,
            status=status,
            created_at=now,
            updated_at=now,
        )
        cards = insert_card(tab.cards, card, anchor, position)
        if cards is None:
            return None

        self._commit_mutation(
            tab, "insert", f"Inserted card {card.card_id}", cards, [card.id],
            selection=Selection([card.id], card.id),
            expand_id=anchor if position == InsertPosition.CHILD else None,
        )
        inserted = next(item for item in cards if item.id == card.id)
        self._publish_history(tab_id, [(card.id, CardVersion(operation=CardHistoryOperation.CREATE, card=inserted))])
        return card.id

    def delete_cards(self, tab_id: str, card_ids: Optional[Sequence[str]] = None) -> bool:
        """
        Delete cards and their whole subtrees (defaults to the selection).

        The card now at the lowest removed position becomes the selection.
        """
        tab = self.get_tab(tab_id)
        targets = list(card_ids) if card_ids is not None else list(tab.selected_card_ids)
        if not targets:
            return False

        remaining, removed, first_index = delete_cards(tab.cards, targets)
        if not removed:
            return False

        if remaining:
            fallback = remaining[min(first_index, len(remaining) - 1)].id
            selection = Selection([fallback], fallback)
        else:
            selection = Selection()

        self._commit_mutation(tab, "delete", f"Deleted {len(removed)} card(s)", remaining, selection=selection)
        self._publish_history(tab_id, [
            (card.id, CardVersion(operation=CardHistoryOperation.DELETE, card=card)) for card in removed
        ])
        return True

    def update_card(self, tab_id: str, card_id: str, patch: Optional[CardPatch] = None, **fields) -> bool:
        """
        Update a card's content fields.

        Accepts a CardPatch or keyword fields (title, body, status, kind, card_id).
        Unknown keywords raise a pydantic ValidationError.
        Display codes already used by another card are refused.
        """
        tab = self.get_tab(tab_id)
        return self._apply_patch(tab, card_id, patch or CardPatch(**fields))

    def _apply_patch(self, tab: Tab, card_id: str, patch: CardPatch,
                     source: Optional[CardVersion] = None) -> bool:
        changes = patch.changes()
        if changes.get("card_id") and is_card_id_duplicate(tab.cards, changes["card_id"], exclude_id=card_id):
            logging.warning(f"Display code {changes['card_id']} already in use; update of {card_id} refused")
            return False

        result = update_card(tab.cards, card_id, patch)
        if result is None:
            return False
        cards, before, after = result

        changed = [field for field in changes if getattr(before, field) != getattr(after, field)]
        diff = CardVersionDiff(
            before=before.model_dump(mode="json", include=set(changed)),
            after=after.model_dump(mode="json", include=set(changed)),
        )
        if source is None:
            self._commit_mutation(tab, "update", f"Updated card {after.card_id or card_id}", cards, [card_id])
            version = CardVersion(operation=CardHistoryOperation.UPDATE, card=after, diff=diff)
        else:
            self._commit_mutation(
                tab, "restore", f"Restored card {after.card_id or card_id} from version {source.version_id}",
                cards, [card_id],
            )
            version = CardVersion(
                operation=CardHistoryOperation.RESTORE,
                card=after,
                diff=diff,
                restored_from_version_id=source.version_id,
                restored_from_timestamp=source.timestamp,
            )
        self._publish_history(tab.id, [(card_id, version)])
        return True

    def restore_card_version(self, tab_id: str, card_id: str, version_id: str) -> bool:
        """
        Copy a recorded version's content back onto a card.

        Title, body, status, kind and display code are restored as one
        journaled update, recorded in history as a restore of that version.

        Args:
            tab_id: Tab holding the card
            card_id: Card to restore
            version_id: Version to restore from, taken from the card's history

        Returns:
            False when the card or version is unknown, no history is available
            or the version matches the current content
        """
        tab = self.get_tab(tab_id)
        if tab.find_card(card_id) is None:
            return False
        history = self.load_card_history(tab_id, card_id)
        if history is None:
            return False
        source = next((version for version in history.versions if version.version_id == version_id), None)
        if source is None:
            logging.info(f"Version {version_id} not found in history of card {card_id}")
            return False

        snapshot = source.card
        patch = CardPatch(
            title=snapshot.title,
            body=snapshot.body,
            status=snapshot.status,
            kind=snapshot.kind,
            card_id=snapshot.card_id,
        )
        return self._apply_patch(tab, card_id, patch, source)

    def cycle_card_status(self, tab_id: str, card_id: str) -> Optional[CardStatus]:
        """Advance a card's status to the next stage; returns the new status."""
        card = self.get_tab(tab_id).find_card(card_id)
        if card is None:
            return None
        status = next_card_status(card.status)
        if not self.update_card(tab_id, card_id, CardPatch(status=status)):
            return None
        return status

    def move_cards(self, tab_id: str, card_ids: Optional[Sequence[str]], target_id: str,
                   position=InsertPosition.AFTER) -> bool:
        """
        Move cards with their subtrees next to a target card.

        Returns False, leaving the tab untouched, if the target is one of the
        moved cards or one of their descendants.
        """
        tab = self.get_tab(tab_id)
        position = InsertPosition(position)
        moving = list(card_ids) if card_ids is not None else list(tab.selected_card_ids)

        cards = move_cards(tab.cards, moving, target_id, position)
        if cards is None:
            return False

        roots = topmost_ids(tab.cards, moving)
        self._commit_mutation(
            tab, "move", f"Moved {len(roots)} card(s)", cards, roots,
            expand_id=target_id if position == InsertPosition.CHILD else None,
        )

        before_by_id = {card.id: card for card in tab.cards}
        versions: List[HistoryEntry] = []
        for card in cards:
            if card.id not in roots:
                continue
            before = before_by_id[card.id]
            diff = CardVersionDiff(
                before={"parent_id": before.parent_id, "level": before.level},
                after={"parent_id": card.parent_id, "level": card.level},
            )
            versions.append((card.id, CardVersion(operation=CardHistoryOperation.UPDATE, card=card, diff=diff)))
        self._publish_history(tab_id, versions)
        return True

    def merge_cards(self, tab_id: str, card_ids: Optional[Sequence[str]] = None,
                    options: Optional[MergeOptions] = None) -> Optional[str]:
        """
        Merge contiguous childless sibling cards (defaults to the selection).

        Returns:
            The merged card id, or None when the cards cannot be merged
        """
        tab = self.get_tab(tab_id)
        targets = list(card_ids) if card_ids is not None else list(tab.selected_card_ids)
        options = options or MergeOptions()
        if not options.remove_originals and options.card_id is None:
            options = options.model_copy(update={
                "card_id": generate_next_card_id(tab.cards, config.card_id_prefix, config.card_id_digits)
            })

        result = merge_cards(tab.cards, targets, self.id_factory(), options)
        if result is None:
            logging.info(f"Merge rejected for {len(targets)} card(s) in tab {tab_id}")
            return None
        cards, merged = result

        self._commit_mutation(
            tab, "merge", f"Merged {len(targets)} cards into {merged.card_id or merged.id}",
            cards, [merged.id], selection=Selection([merged.id], merged.id),
        )

        merged = next(card for card in cards if card.id == merged.id)
        versions: List[HistoryEntry] = [(merged.id, CardVersion(operation=CardHistoryOperation.MERGE, card=merged))]
        if options.remove_originals:
            merged_ids = set(targets)
            originals = [card for card in tab.cards if card.id in merged_ids]
            versions.extend(
                (card.id, CardVersion(operation=CardHistoryOperation.DELETE, card=card)) for card in originals
            )
        self._publish_history(tab_id, versions)
        return merged.id

    # ------------------------------------------------------------------
    # Clipboard

    def copy_cards(self, tab_id: str, card_ids: Optional[Sequence[str]] = None) -> int:
        """
        Copy cards (defaults to the selection) to the shared clipboard.

        Returns:
            Number of subtrees copied; the clipboard is unchanged when 0
        """
        tab = self.get_tab(tab_id)
        targets = list(card_ids) if card_ids is not None else list(tab.selected_card_ids)
        nodes = copy_subtrees(tab.cards, targets)
        if not nodes:
            return 0
        self._clipboard = nodes
        logging.info(f"Copied {len(nodes)} subtree(s) from tab {tab_id}")
        return len(nodes)

    def paste_cards(self, tab_id: str, position=InsertPosition.AFTER,
                    anchor_id: Optional[str] = None) -> Optional[List[str]]:
        """
        Paste the clipboard next to an anchor, with the same anchoring as insert.

        Returns:
            Ids of the pasted root cards (now selected), or None when the
            clipboard is empty or the anchor cannot be resolved
        """
        tab = self.get_tab(tab_id)
        if not self._clipboard:
            return None
        position = InsertPosition(position)
        resolved, anchor = self._resolve_anchor(tab, anchor_id)
        if not resolved:
            return None

        result = paste_subtrees(
            tab.cards, self._clipboard, anchor, position, self.id_factory,
            config.card_id_prefix, config.card_id_digits,
        )
        if result is None:
            return None

        self._commit_mutation(
            tab, "paste", f"Pasted {len(result.new_cards)} card(s)", result.cards,
            [card.id for card in result.new_cards],
            selection=Selection(list(result.root_ids), result.root_ids[-1]),
            expand_id=anchor if position == InsertPosition.CHILD else None,
        )
        self._publish_history(tab_id, [
            (card.id, CardVersion(operation=CardHistoryOperation.CREATE, card=card)) for card in result.new_cards
        ])
        return list(result.root_ids)

    # ------------------------------------------------------------------
    # Undo / redo

    def _restore_cards(self, tab: Tab, cards: List[Card]) -> None:
        existing = {card.id for card in cards}
        selection = prune_selection(cards, self._current_selection(tab))
        self._tabs[tab.id] = tab.model_copy(update={
            "cards": cards,
            "is_dirty": True,
            "selected_card_ids": selection.card_ids,
            "anchor_card_id": selection.anchor_id,
            "expanded_card_ids": [card_id for card_id in tab.expanded_card_ids if card_id in existing],
            "dirty_card_ids": [card_id for card_id in tab.dirty_card_ids if card_id in existing],
            "editing_card_id": tab.editing_card_id if tab.editing_card_id in existing else None,
        })

    def undo(self, tab_id: str) -> bool:
        tab = self.get_tab(tab_id)
        restored = self._journals[tab_id].undo(tab.cards)
        if restored is None:
            return False
        self._restore_cards(tab, restored)
        return True

    def redo(self, tab_id: str) -> bool:
        tab = self.get_tab(tab_id)
        restored = self._journals[tab_id].redo(tab.cards)
        if restored is None:
            return False
        self._restore_cards(tab, restored)
        return True

    # ------------------------------------------------------------------
    # Trace flags (owned by the relation subsystem, never journaled)

    def update_trace_flags(self, tab_id: str,
                           flags: Dict[str, Tuple[Optional[bool], Optional[bool]]]) -> int:
        """
        Overwrite trace flags without journaling or marking the tab dirty.

        Args:
            tab_id: Target tab
            flags: card id -> (has_left_trace, has_right_trace); None keeps a value

        Returns:
            Number of cards whose flags changed
        """
        tab = self.get_tab(tab_id)
        cards, changed = set_trace_flags(tab.cards, flags)
        if changed:
            self._tabs[tab_id] = tab.model_copy(update={"cards": cards})
        return changed

    def apply_trace_flags(self, file_name: str,
                          flags: Dict[str, Tuple[Optional[bool], Optional[bool]]]) -> int:
        """Trace flag update addressed by file name; 0 when the file is not open."""
        tab = self.find_tab_by_file(file_name)
        if tab is None:
            return 0
        return self.update_trace_flags(tab.id, flags)

    # ------------------------------------------------------------------
    # History recorder

    def _publish_history(self, tab_id: str, entries: List[HistoryEntry]) -> None:
        if self.history_recorder is None or not entries:
            return
        self._pending_history.setdefault(tab_id, []).extend(entries)
        if self._tabs[tab_id].file_name is not None:
            self._flush_history(tab_id)

    def _flush_history(self, tab_id: str) -> None:
        tab = self._tabs[tab_id]
        if self.history_recorder is None or tab.file_name is None:
            return
        for card_id, version in self._pending_history.pop(tab_id, []):
            try:
                self.history_recorder.append_version(tab.file_name, card_id, version)
            except Exception as e:
                logging.error(f"Failed to record history for card {card_id} in {tab.file_name}: {e}")

    def load_card_history(self, tab_id: str, card_id: str) -> Optional[CardHistory]:
        """
        Load a card's recorded history, None for untitled tabs or without a recorder.
        """
        tab = self.get_tab(tab_id)
        if self.history_recorder is None or tab.file_name is None:
            return None
        try:
            return self.history_recorder.load_history(tab.file_name, card_id)
        except Exception as e:
            logging.error(f"Failed to load history for card {card_id} in {tab.file_name}: {e}")
            return None

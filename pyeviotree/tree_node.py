import weakref
from collections import deque
from typing import Any, Iterator, List, Optional, Tuple


class TreeNode:
    """
    Generic ordered tree node.

    A node carries an arbitrary ``value`` and owns its children. The link back
    to the parent is a weak reference, so a subtree never keeps its container
    alive and no parent/child reference cycles are created.
    """

    def __init__(self, value: Any = None):
        self.value = value
        self._parent_ref = None
        self._children: List['TreeNode'] = []

    # ------------------------------------------------------------------
    # Structure editing

    @property
    def parent(self) -> Optional['TreeNode']:
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def children(self) -> Tuple['TreeNode', ...]:
        return tuple(self._children)

    def insert(self, child: 'TreeNode', index: int) -> None:
        """
        Insert ``child`` at position ``index``, detaching it from any old parent.

        Raises:
            ValueError: if child is None, this node, or one of its ancestors
            IndexError: if index is out of range
        """
        if child is None:
            raise ValueError("new child is None")
        if child is self or child.is_ancestor_of(self):
            raise ValueError("new child is an ancestor")
        old_parent = child.parent
        limit = len(self._children) - (1 if old_parent is self else 0)
        if index < 0 or index > limit:
            raise IndexError(f"index {index} out of range for {limit} children")
        if old_parent is not None:
            old_parent.remove(child)
        child._parent_ref = weakref.ref(self)
        self._children.insert(index, child)

    def add(self, child: 'TreeNode') -> None:
        """Append ``child`` as the last child."""
        if child is not None and child.parent is self:
            self.insert(child, len(self._children) - 1)
        else:
            self.insert(child, len(self._children))

    def remove(self, child: 'TreeNode') -> None:
        if child is None or child.parent is not self:
            raise ValueError("argument is not a child")
        self._children.remove(child)
        child._parent_ref = None

    def remove_at(self, index: int) -> 'TreeNode':
        child = self._children.pop(index)
        child._parent_ref = None
        return child

    def remove_from_parent(self) -> None:
        parent = self.parent
        if parent is not None:
            parent.remove(self)

    def remove_all_children(self) -> None:
        for child in self._children:
            child._parent_ref = None
        self._children = []

    # ------------------------------------------------------------------
    # Children queries

    @property
    def child_count(self) -> int:
        return len(self._children)

    def child_at(self, index: int) -> 'TreeNode':
        return self._children[index]

    def index_of(self, child: 'TreeNode') -> int:
        """Index of ``child``, or -1 if it is not a child of this node."""
        for i, node in enumerate(self._children):
            if node is child:
                return i
        return -1

    def is_child(self, node: Optional['TreeNode']) -> bool:
        return node is not None and node.parent is self

    @property
    def first_child(self) -> Optional['TreeNode']:
        return self._children[0] if self._children else None

    @property
    def last_child(self) -> Optional['TreeNode']:
        return self._children[-1] if self._children else None

    def child_after(self, child: 'TreeNode') -> Optional['TreeNode']:
        index = self.index_of(child)
        if index == -1:
            raise ValueError("node is not a child")
        if index + 1 < len(self._children):
            return self._children[index + 1]
        return None

    def child_before(self, child: 'TreeNode') -> Optional['TreeNode']:
        index = self.index_of(child)
        if index == -1:
            raise ValueError("argument is not a child")
        if index > 0:
            return self._children[index - 1]
        return None

    # ------------------------------------------------------------------
    # Ancestry

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def is_leaf(self) -> bool:
        return not self._children

    @property
    def root(self) -> 'TreeNode':
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def level(self) -> int:
        """Number of links between this node and the root."""
        level = 0
        node = self.parent
        while node is not None:
            level += 1
            node = node.parent
        return level

    @property
    def depth(self) -> int:
        """Longest distance from this node down to a leaf."""
        if not self._children:
            return 0
        return 1 + max(child.depth for child in self._children)

    @property
    def path(self) -> Tuple['TreeNode', ...]:
        """Nodes from the root down to this node."""
        nodes = []
        node = self
        while node is not None:
            nodes.append(node)
            node = node.parent
        return tuple(reversed(nodes))

    def is_ancestor_of(self, other: Optional['TreeNode']) -> bool:
        """True if this node is ``other`` or lies on its path to the root."""
        node = other
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False

    def is_descendant_of(self, other: Optional['TreeNode']) -> bool:
        return other is not None and other.is_ancestor_of(self)

    def shared_ancestor(self, other: 'TreeNode') -> Optional['TreeNode']:
        """Nearest node that is an ancestor of both, or None if unrelated."""
        if other is self:
            return self
        if other is None:
            return None
        ancestors = set(id(node) for node in self.path)
        node = other
        while node is not None:
            if id(node) in ancestors:
                return node
            node = node.parent
        return None

    def is_related(self, other: Optional['TreeNode']) -> bool:
        return other is not None and self.root is other.root

    # ------------------------------------------------------------------
    # Siblings

    def is_sibling(self, other: Optional['TreeNode']) -> bool:
        if other is None:
            return False
        if other is self:
            return True
        parent = self.parent
        return parent is not None and parent is other.parent

    @property
    def sibling_count(self) -> int:
        parent = self.parent
        return 1 if parent is None else parent.child_count

    @property
    def next_sibling(self) -> Optional['TreeNode']:
        parent = self.parent
        return None if parent is None else parent.child_after(self)

    @property
    def previous_sibling(self) -> Optional['TreeNode']:
        parent = self.parent
        return None if parent is None else parent.child_before(self)

    # ------------------------------------------------------------------
    # Leaves

    @property
    def first_leaf(self) -> 'TreeNode':
        node = self
        while node._children:
            node = node._children[0]
        return node

    @property
    def last_leaf(self) -> 'TreeNode':
        node = self
        while node._children:
            node = node._children[-1]
        return node

    @property
    def next_leaf(self) -> Optional['TreeNode']:
        node = self
        while node.parent is not None:
            sibling = node.next_sibling
            if sibling is not None:
                return sibling.first_leaf
            node = node.parent
        return None

    @property
    def previous_leaf(self) -> Optional['TreeNode']:
        node = self
        while node.parent is not None:
            sibling = node.previous_sibling
            if sibling is not None:
                return sibling.last_leaf
            node = node.parent
        return None

    @property
    def leaf_count(self) -> int:
        return sum(1 for node in self.preorder() if node.is_leaf)

    # ------------------------------------------------------------------
    # Traversal

    @property
    def next_node(self) -> Optional['TreeNode']:
        """Node after this one in a pre-order walk of the whole tree."""
        if self._children:
            return self._children[0]
        node = self
        while node is not None:
            sibling = node.next_sibling
            if sibling is not None:
                return sibling
            node = node.parent
        return None

    @property
    def previous_node(self) -> Optional['TreeNode']:
        """Node before this one in a pre-order walk of the whole tree."""
        parent = self.parent
        if parent is None:
            return None
        sibling = self.previous_sibling
        if sibling is None:
            return parent
        return sibling.last_leaf

    def preorder(self) -> Iterator['TreeNode']:
        yield self
        for child in self._children:
            yield from child.preorder()

    def postorder(self) -> Iterator['TreeNode']:
        for child in self._children:
            yield from child.postorder()
        yield self

    depth_first = postorder

    def breadth_first(self) -> Iterator['TreeNode']:
        queue = deque([self])
        while queue:
            node = queue.popleft()
            yield node
            queue.extend(node._children)

    def __iter__(self) -> Iterator['TreeNode']:
        return iter(self._children)

    def __repr__(self) -> str:
        return f"TreeNode({self.value!r}, children={len(self._children)})"

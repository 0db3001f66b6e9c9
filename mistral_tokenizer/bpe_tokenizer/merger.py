from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from mistral_tokenizer.bpe_tokenizer.merge_queue import MergeQueue
from mistral_tokenizer.bpe_tokenizer.merges import MergeTable
from mistral_tokenizer.bpe_tokenizer.vocabulary import Vocabulary


@dataclass(eq=False)
class TokenNode:
    orig_pos: int
    token_id: int
    prev: Optional["TokenNode"] = field(default=None, repr=False)
    next: Optional["TokenNode"] = field(default=None, repr=False)
    deleted: bool = False


# (left node, string of the merged token)
MergeCandidate = Tuple[TokenNode, str]


class BPEMerger:
    """
    Applies merges to a token sequence in rank order until none apply.

    The sequence is a doubly linked list of TokenNode. Merge candidates go into
    a MergeQueue keyed by (rank, orig_pos) of the left node, so that among
    equal-rank merges the leftmost one is applied first. That key orders
    candidates exactly like rank + orig_pos / len(sequence).

    A node that a queued candidate may still point to is never modified in
    place. When its neighbourhood changes it is marked deleted and replaced by
    a fresh node, so stale candidates are recognised when popped.
    """

    def __init__(self, vocabulary: Vocabulary, merges: MergeTable) -> None:
        self.vocabulary = vocabulary
        self.merges = merges

    def _push_candidate(self, queue: MergeQueue[MergeCandidate], left: TokenNode) -> None:
        right = left.next
        if right is None:
            return
        rank = self.merges.rank_of(left.token_id, right.token_id)
        if rank is None:
            return
        merged = self.vocabulary.id_to_string(left.token_id) + self.vocabulary.id_to_string(right.token_id)
        queue.push((rank, left.orig_pos), (left, merged))

    def merge(self, token_ids: List[int]) -> List[int]:
        """
        Args:
            token_ids: 初始的逐字符 / 逐字节 token ID

        Returns:
            所有可用合并完成后的 token ID 列表
        """
        if not token_ids:
            return []

        queue: MergeQueue[MergeCandidate] = MergeQueue()

        head = TokenNode(orig_pos=0, token_id=token_ids[0])
        prev_node = head
        for pos in range(1, len(token_ids)):
            node = TokenNode(orig_pos=pos, token_id=token_ids[pos], prev=prev_node)
            prev_node.next = node
            self._push_candidate(queue, prev_node)
            prev_node = node

        while not queue.is_empty():
            left, merged = queue.pop()
            right = left.next

            # 懒惰删除: 这一对已经被之前的合并消耗掉了
            if left.deleted or right is None or right.deleted:
                continue

            left.deleted = True
            right.deleted = True

            if left.prev is not None:
                old_prev = left.prev
                old_prev.deleted = True
                new_prev = TokenNode(
                    orig_pos=old_prev.orig_pos,
                    token_id=old_prev.token_id,
                    prev=old_prev.prev,
                    next=old_prev.next,
                )
                left.prev = new_prev
                if new_prev.prev is not None:
                    new_prev.prev.next = new_prev
                else:
                    head = new_prev

            merged_id = self.vocabulary.string_to_id(merged)
            if merged_id is None:
                # 合并结果不在词表中 (merges 与词表不匹配), 保持原样
                continue

            result = TokenNode(
                orig_pos=left.orig_pos,
                token_id=merged_id,
                prev=left.prev,
                next=right.next,
            )

            if result.prev is not None:
                result.prev.next = result
                self._push_candidate(queue, result.prev)
            else:
                head = result

            if result.next is not None:
                result.next.prev = result
                self._push_candidate(queue, result)

        merged_ids = []
        node: Optional[TokenNode] = head
        while node is not None:
            merged_ids.append(node.token_id)
            node = node.next
        return merged_ids

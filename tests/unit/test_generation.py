"""Unit tests for the connection generation counter."""

import threading

from yzterm.controller.generation import GenerationCounter


def test_advance_invalidates_previous_tokens():
    counter = GenerationCounter()
    first = counter.advance()
    assert counter.is_current(first)

    second = counter.advance()
    assert second > first
    assert not counter.is_current(first)
    assert counter.is_current(second)
    assert counter.current == second


def test_concurrent_advances_hand_out_unique_tokens():
    counter = GenerationCounter()
    tokens: list[int] = []
    lock = threading.Lock()

    def worker():
        for _ in range(500):
            token = counter.advance()
            with lock:
                tokens.append(token)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(set(tokens)) == 2000
    assert counter.current == max(tokens)

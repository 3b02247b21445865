class ReadBuffer:
    """
    Bytes of a remote object that have been fetched so far.

    The buffer keeps a list of resident (start, end) ranges, end exclusive, so reads
    after backwards seeks are served from memory and only the missing spans are fetched.
    """

    def __init__(self) -> None:
        self.data = bytearray()
        self.resident: list[tuple[int, int]] = []

    def clear(self) -> None:
        self.data = bytearray()
        self.resident = []

    def missing(self, start: int, end: int) -> list[tuple[int, int]]:
        """
        The sub-ranges of [start, end) that are not resident yet
        """
        gaps = []
        pos = start
        for r_start, r_end in self.resident:
            if r_end <= pos:
                continue
            if r_start >= end:
                break
            if r_start > pos:
                gaps.append((pos, r_start))
            pos = max(pos, r_end)
            if pos >= end:
                break
        if pos < end:
            gaps.append((pos, end))
        return gaps

    def add(self, start: int, chunk: bytes) -> None:
        end = start + len(chunk)
        if end > len(self.data):
            self.data.extend(b"\0" * (end - len(self.data)))
        self.data[start:end] = chunk
        self._mark(start, end)

    def get(self, start: int, end: int) -> bytes:
        return bytes(self.data[start:end])

    def _mark(self, start: int, end: int) -> None:
        merged = []
        for r_start, r_end in sorted(self.resident + [(start, end)]):
            if merged and r_start <= merged[-1][1]:
                merged[-1] = (merged[-1][0], max(merged[-1][1], r_end))
            else:
                merged.append((r_start, r_end))
        self.resident = merged

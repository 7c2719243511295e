import threading


FOLDER_SENTINEL = "\\folder "


class IdCounter:
    # starts at 1; every read bumps it, so values are never handed out twice
    def __init__(self, start=0):
        self._value = start
        self._lock = threading.Lock()

    def next(self):
        with self._lock:
            self._value += 1
            return str(self._value)

    @property
    def last(self):
        return self._value


class Fragment:
    def __init__(self, content, id, folder_id=None):
        self.content = content      # latex markup
        self.id = id                # decimal string, unique per run
        self.folder_id = folder_id  # id of the containing folder, if any

    @property
    def is_folder(self):
        return self.content.startswith(FOLDER_SENTINEL)

    @property
    def folder_title(self):
        return self.content[len(FOLDER_SENTINEL):]

    def __repr__(self):
        if self.folder_id is not None:
            return f"Fragment({self.id}, {self.content!r}, folder={self.folder_id})"
        return f"Fragment({self.id}, {self.content!r})"


class FragmentList:
    def __init__(self, counter=None):
        self.counter = counter or IdCounter()
        self.fragments = []    # emission order
        self.diagnostics = []  # non-fatal problems found while compiling

    def emit(self, content, folder_id=None):
        frag = Fragment(content, self.counter.next(), folder_id)
        self.fragments.append(frag)
        return frag

    def emit_folder(self, title):
        return self.emit(FOLDER_SENTINEL + title)

    def contents(self):
        return [f.content for f in self.fragments]

    def __iter__(self):
        return iter(self.fragments)

    def __len__(self):
        return len(self.fragments)

    def __getitem__(self, index):
        return self.fragments[index]

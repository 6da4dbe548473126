from jdraft import applyPatches, produce


class TodoStore:

    """A tiny store keeping immutable state, with undo and redo built on
    inverse patches.
    """

    def __init__(self, state):
        self.state = state
        self.undoStack = []
        self.redoStack = []

    def update(self, title, recipe):
        def recordPatches(patches, inversePatches):
            if patches:
                self.undoStack.append((title, patches, inversePatches))
                self.redoStack = []

        self.state = produce(self.state, recipe, recordPatches)

    def undo(self):
        title, patches, inversePatches = self.undoStack.pop()
        self.state = applyPatches(self.state, inversePatches)
        self.redoStack.append((title, patches, inversePatches))

    def redo(self):
        title, patches, inversePatches = self.redoStack.pop()
        self.state = applyPatches(self.state, patches)
        self.undoStack.append((title, patches, inversePatches))


def addTodo(title):
    def recipe(draft):
        draft["todos"].append({"title": title, "done": False})
    return recipe


def toggleTodo(index):
    def recipe(draft):
        todo = draft["todos"][index]
        todo["done"] = not todo["done"]
    return recipe


if __name__ == "__main__":
    store = TodoStore({"todos": [], "filter": {"showDone": True}})
    initialState = store.state

    store.update("add todo", addTodo("write docs"))
    store.update("add todo", addTodo("release"))
    store.update("toggle todo", toggleTodo(0))
    assert store.state["todos"][0] == {"title": "write docs", "done": True}
    assert len(store.undoStack) == 3

    # untouched parts of the state are shared between versions
    assert store.state["filter"] is initialState["filter"]

    store.update("toggle todo", toggleTodo(0))
    store.update("toggle todo", toggleTodo(0))
    # a recipe that changes nothing records nothing
    assert len(store.undoStack) == 5
    store.update("nothing", lambda draft: None)
    assert len(store.undoStack) == 5

    store.undo()
    store.undo()
    store.undo()
    assert store.state["todos"][0]["done"] is False
    store.undo()
    assert len(store.state["todos"]) == 1
    store.undo()
    assert store.state == initialState

    store.redo()
    store.redo()
    assert [todo["title"] for todo in store.state["todos"]] == ["write docs", "release"]

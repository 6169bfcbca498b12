import tempfile
from pathlib import Path, PurePosixPath

from hypothesis import assume, given
from hypothesis import strategies as st

from fuxi.config import Config
from fuxi.sync import PathSynchronizer, mirror_name
from fuxi.system import ProcessRunner, SystemStrategy

# Strategy: path components without separators or NULs
component = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters="/\x00"),
    min_size=1,
    max_size=12,
)
relative_paths = st.lists(component, min_size=1, max_size=5).map(lambda parts: "/".join(parts))


@given(path=relative_paths, absolute=st.booleans())
def test_mirror_name_is_the_last_component(path: str, absolute: bool) -> None:
    """
    Property: The mirror name of a path is a single component, and deriving it
    again from itself is a no-op.
    """
    if absolute:
        path = "/" + path
    assume(any(p not in (".", "..") for p in PurePosixPath(path).parts))

    name = mirror_name(path)

    assert len(name.parts) == 1
    assert name.name not in (".", "..")
    assert mirror_name(name) == name


@given(paths=st.lists(st.sampled_from(["/a", "/b", "/c", "~/d", "e"]), max_size=20))
def test_add_path_never_duplicates(paths: list[str]) -> None:
    """
    Property: Adding paths in any order yields each path once, in order of
    first appearance.
    """
    conf = Config(selected_profile="p", profiles={"p": []})

    for path in paths:
        conf.add_path(path)

    assert conf.selected_paths() == list(dict.fromkeys(paths))


@given(
    files=st.dictionaries(
        st.text(alphabet="abcdefghij", min_size=1, max_size=6),
        st.binary(max_size=64),
        max_size=6,
    )
)
def test_backup_and_restore_preserve_bytes(files: dict[str, bytes]) -> None:
    """
    Property: Whatever bytes are backed up come back unchanged when applied.
    """
    # tmp_path is function-scoped, so each example gets its own directory.
    with tempfile.TemporaryDirectory() as tmp:
        root = Path(tmp)
        live = root / "live"
        live.mkdir()
        for name, data in files.items():
            (live / name).write_bytes(data)

        synchronizer = PathSynchronizer(ProcessRunner(), lambda _: False, SystemStrategy())
        mirror = root / "repo" / "p" / mirror_name(live)
        synchronizer.sync(live, mirror)

        for name in files:
            (live / name).write_bytes(b"clobbered")
        synchronizer.sync(mirror, live, flatten_into_existing_dir=True)

        assert {p.name: p.read_bytes() for p in live.iterdir()} == files

import numpy as np
import pytest

from pyfairing.errors import FairingError, InputMalformedError, IOUnavailableError
from pyfairing.mesh import example_mesh
from pyfairing.obj import parse_obj, read_obj, write_obj


TETRA_OBJ = """\
# regular tetrahedron
o tet
v 1 1 1
v -1 -1 1
v -1 1 -1
v 1 -1 -1
vn 0 0 1

f 1 3 2
f 1/1/1 2/2/1 4/3/1
f 1//1 4//1 3//1
f 2 3 4
"""


def test_parse_obj_shifts_to_zero_based():
    mesh = parse_obj(TETRA_OBJ.splitlines())
    assert mesh.vertex_count == 4
    assert mesh.faces.tolist() == [[0, 2, 1], [0, 1, 3], [0, 3, 2], [1, 2, 3]]
    assert np.array_equal(mesh.vertices, example_mesh("tetrahedron").vertices)


@pytest.mark.parametrize(
    "text, fragment",
    [
        ("v 1 2\n", "3 coordinates"),
        ("v 1 2 x\n", "non-numeric"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2\n", "3 indices"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 0 1 2\n", ">= 1"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 a\n", "not an integer"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n", "exceeds vertex count"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 1 2\n", "repeats a vertex"),
        ("v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1/1 2 1/3\n", "repeats a vertex"),
    ],
)
def test_parse_obj_rejects_malformed_lines(text, fragment):
    with pytest.raises(InputMalformedError, match=fragment) as err:
        parse_obj(text.splitlines(), name="bad.obj")
    assert err.value.source == "bad.obj"
    assert str(err.value).startswith("bad.obj:")


def test_read_obj_reports_line_numbers(tmp_path):
    path = tmp_path / "broken.obj"
    path.write_text("v 0 0 0\nv 1 0 0\nv 0 1 0\n\nf 1 2 3 4\n")
    with pytest.raises(InputMalformedError) as err:
        read_obj(path)
    assert err.value.lineno == 5


def test_missing_file_is_io_unavailable(tmp_path):
    with pytest.raises(IOUnavailableError) as err:
        read_obj(tmp_path / "nope.obj")
    assert isinstance(err.value, FairingError)
    assert isinstance(err.value, OSError)


def test_write_then_read(tmp_path):
    mesh = example_mesh("icosahedron")
    path = tmp_path / "ico.obj"
    write_obj(mesh, path, precision=17)

    lines = path.read_text().splitlines()
    assert sum(1 for ln in lines if ln.startswith("v ")) == 12
    assert min(int(t) for ln in lines if ln.startswith("f ") for t in ln.split()[1:]) == 1

    back = read_obj(path)
    assert np.array_equal(back.faces, mesh.faces)
    assert np.allclose(back.vertices, mesh.vertices, atol=1e-15)


def test_invalid_utf8_is_malformed(tmp_path):
    path = tmp_path / "binary.obj"
    path.write_bytes(b"v 0 0 0\n\xff\xfe\n")
    with pytest.raises(InputMalformedError, match="UTF-8") as err:
        read_obj(path)
    assert err.value.source == str(path)

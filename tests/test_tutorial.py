import matplotlib.pyplot as plt
import pytest

from dualband import tutorial
from dualband.report import build_pdf, save_figure
from dualband.utils import EstimationError


def test_run_writes_figures_and_pdf(tmp_path):
    result = tutorial.run(outdir=tmp_path, n_points=5, pdf=True)
    assert len(result["figures"]) == 6
    for path in result["figures"]:
        assert path.exists() and path.stat().st_size > 0
    assert result["pdf"].read_bytes().startswith(b"%PDF")

    assert set(result["predictions"]) == {"Prediction over x1", "Prediction over x2"}
    assert set(result["effects"]) == {"Effect of x1", "Effect of x2"}
    for table in result["conditional_effects"].values():
        assert (table["lower_wide"] <= table["lower_narrow"]).all()
        assert len(table) == 5
    assert result["interaction_model"]["names"][-1] == "x1:x2"


def test_run_without_pdf(tmp_path):
    result = tutorial.run(outdir=tmp_path, n_points=3, levels=(0.90, 0.95), pdf=False)
    assert result["pdf"] is None
    assert not list(tmp_path.glob("*.pdf"))
    table = result["effects"]["Effect of x1"]
    assert table.attrs["levels"] == (0.90, 0.95)


def test_main_renders_pngs(tmp_path, capsys):
    tutorial.main(["--outdir", str(tmp_path), "--no-pdf", "--points", "4", "--seed", "3"])
    assert len(list(tmp_path.glob("fig*.png"))) == 6
    out = capsys.readouterr().out
    assert "Section 5" in out
    assert "so the true intercept is 2." in out


@pytest.mark.parametrize(
    "argv",
    [["--levels", "0.99", "0.90"], ["--levels", "0.9", "1.5"], ["--points", "1"]],
)
def test_main_rejects_bad_arguments(tmp_path, argv):
    with pytest.raises(SystemExit) as info:
        tutorial.main(["--outdir", str(tmp_path), "--no-pdf"] + argv)
    assert info.value.code == 2


def test_main_aborts_on_estimation_error(tmp_path, monkeypatch):
    def failing_fit(data, formula):
        raise EstimationError("fit", "design matrix is rank-deficient")

    monkeypatch.setattr(tutorial, "fit", failing_fit)
    with pytest.raises(SystemExit) as info:
        tutorial.main(["--outdir", str(tmp_path), "--no-pdf"])
    assert "[fit]" in str(info.value.code)


def test_build_pdf_with_text_only_section(tmp_path):
    fig, ax = plt.subplots()
    ax.plot([0, 1], [0, 1])
    png = save_figure(fig, tmp_path / "figs", "line.png")
    assert png.exists()

    pdf = build_pdf(
        [("Section A\n\n  indented <text> & more", png), ("Section B\nno figure", None)],
        tmp_path / "doc.pdf",
        "Title",
        intro_lines=["first", "", "second"],
    )
    assert pdf.read_bytes()[:4] == b"%PDF"

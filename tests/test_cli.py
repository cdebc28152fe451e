import signal
from pathlib import Path

import pytest

from rmconvert import __main__ as cli
from rmconvert.exceptions import ConversionFailed, Interrupted


@pytest.fixture()
def captured(monkeypatch, tmp_path):
    """Replace convert() and record what it was called with."""
    calls = []

    def fake_convert(bundle_path, options):
        calls.append((bundle_path, options))
        return options.output or Path(f"{bundle_path.stem}.pdf")

    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "convert", fake_convert)
    return calls


def test_flags_build_options(captured, bundle_factory, tmp_path):
    archive = bundle_factory()

    code = cli.main([
        "-c", "red", "-w", "400", "-h", "500", "-s", "2", "-r", "-p",
        "-o", str(tmp_path / "out.pdf"), "-q", str(archive),
    ])

    assert code == cli.EXIT_OK
    (bundle_path, options), = captured
    assert bundle_path == archive
    assert options.width == 400.0
    assert options.height == 500.0
    assert options.output == tmp_path / "out.pdf"
    assert options.style.ink_color == "red"
    assert options.style.stroke_width == 2.0
    assert options.style.margins is True
    assert options.style.pale is True


def test_defaults(captured, bundle_factory):
    archive = bundle_factory()

    assert cli.main([str(archive)]) == cli.EXIT_OK

    (_, options), = captured
    assert options.width is None and options.height is None
    assert options.output is None
    assert options.style.ink_color is None
    assert options.style.stroke_width is None
    assert not options.style.margins and not options.style.pale


def test_config_file_in_working_directory(captured, bundle_factory, tmp_path):
    (tmp_path / "rmconvert.toml").write_text('[style]\ncolor = "green"\npale = true\n')
    archive = bundle_factory()

    assert cli.main(["-c", "red", str(archive)]) == cli.EXIT_OK

    (_, options), = captured
    assert options.style.ink_color == "red"
    assert options.style.pale is True


def test_progress_output(captured, bundle_factory, capsys):
    archive = bundle_factory(name="lecture")

    cli.main([str(archive)])

    out = capsys.readouterr().out
    assert "reMarkable output converter" in out
    assert "Input archive: lecture.zip" in out
    assert "Output file:   lecture.pdf" in out


def test_quiet(captured, bundle_factory, capsys):
    cli.main(["-q", str(bundle_factory())])

    assert capsys.readouterr().out == ""


def test_missing_input(captured, tmp_path, capsys):
    assert cli.main([str(tmp_path / "missing.zip")]) == cli.EXIT_NOT_FOUND
    assert "File not found" in capsys.readouterr().err
    assert captured == []


def test_bad_config(captured, bundle_factory, tmp_path):
    assert cli.main(["--config", str(tmp_path / "nope.toml"), str(bundle_factory())]) == cli.EXIT_CONFIG


def test_bad_stroke_width(captured, bundle_factory):
    assert cli.main(["-s", "-1", str(bundle_factory())]) == cli.EXIT_CONFIG


def test_conversion_failure(monkeypatch, bundle_factory, capsys):
    def failing(bundle_path, options):
        raise ConversionFailed(2, "Page 2: broken")

    monkeypatch.setattr(cli, "convert", failing)

    assert cli.main([str(bundle_factory())]) == cli.EXIT_FAILED
    assert "Page 2: broken" in capsys.readouterr().err


def test_interrupt_exit_code(monkeypatch, bundle_factory, capsys):
    def interrupted(bundle_path, options):
        raise Interrupted(signal.SIGINT)

    monkeypatch.setattr(cli, "convert", interrupted)

    assert cli.main([str(bundle_factory())]) == 128 + signal.SIGINT
    assert "Caught SIGINT, aborting." in capsys.readouterr().out


def test_signal_handlers_restored(captured, bundle_factory):
    before = signal.getsignal(signal.SIGINT)

    cli.main(["-q", str(bundle_factory())])

    assert signal.getsignal(signal.SIGINT) is before


def test_help_does_not_clash_with_height(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--help"])

    assert excinfo.value.code == 0
    assert "--height" in capsys.readouterr().out


def test_end_to_end(monkeypatch, bundle_factory, simple_record, tmp_path):
    import fitz  # PyMuPDF

    monkeypatch.chdir(tmp_path)
    archive = bundle_factory(name="notes", records={1: simple_record})

    assert cli.main(["-q", "-r", str(archive)]) == cli.EXIT_OK

    pdf = fitz.open(tmp_path / "notes.pdf")
    try:
        assert len(pdf) == 3
    finally:
        pdf.close()

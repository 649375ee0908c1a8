import pathlib

from backend.run_local import main


def test_prints_estimate_for_sample(capsys):
    main(pathlib.Path(__file__).parent / "sample_user.json")
    out = capsys.readouterr().out
    assert "4 appliances, region Texas:" in out
    assert " - Air Conditioner:" in out
    assert "Monthly: $" in out

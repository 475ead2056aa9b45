from lecture_summary import run


def test_start_rounds_grace_period_up(mocker, monkeypatch):
    monkeypatch.setenv("SHUTDOWN_GRACE_PERIOD", "0.5")
    uvicorn_run = mocker.patch("lecture_summary.run.uvicorn.run")

    run.start()

    uvicorn_run.assert_called_once_with(
        "lecture_summary.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=3000,
        timeout_graceful_shutdown=1,
    )

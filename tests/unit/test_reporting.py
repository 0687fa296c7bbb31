import io
import json

from fruitnet.reporting.metrics import ConsoleProgress, CsvSink, JsonlSink
from fruitnet.reporting.plots import PlotAdapter, plot_training_history
from fruitnet.reporting.summary import summarise_history, write_summary


def test_jsonl_sink_appends_records(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", split="train", seed=3)
    sink.on_epoch(1, {"loss": 1.0, "accuracy": 0.5})
    sink(2, {"loss": 0.5, "accuracy": 0.75})
    lines = [json.loads(line) for line in (tmp_path / "m.jsonl").read_text().splitlines()]
    assert [line["epoch"] for line in lines] == [1, 2]
    assert lines[1] == {"epoch": 2, "split": "train", "seed": 3, "loss": 0.5, "accuracy": 0.75}


def test_csv_sink_keeps_fixed_columns(tmp_path):
    sink = CsvSink(tmp_path / "m.csv")
    sink.on_epoch(1, {"loss": 1.0, "accuracy": 0.5, "eval_accuracy": 0.25, "batches": 2.0})
    sink.on_epoch(2, {"loss": 0.9, "accuracy": 0.6})
    lines = (tmp_path / "m.csv").read_text().splitlines()
    assert lines[0] == "epoch,loss,accuracy,eval_loss,eval_accuracy,eval_macro_f1"
    assert lines[1] == "1,1.0,0.5,,0.25,"
    assert lines[2] == "2,0.9,0.6,,,"


def test_console_progress_prints_on_eval_and_final_epochs():
    stream = io.StringIO()
    progress = ConsoleProgress(3, stream=stream)
    progress.on_epoch(1, {"loss": 1.0, "accuracy": 0.5, "eval_accuracy": 0.25})
    progress.on_epoch(2, {"loss": 0.8, "accuracy": 0.6})
    progress.on_epoch(3, {"loss": 0.5, "accuracy": 0.9})
    lines = stream.getvalue().splitlines()
    assert lines == [
        "Epoch 1/3 - Loss: 1.0000 - Train Acc: 50.00% - Test Acc: 25.00%",
        "Epoch 3/3 - Loss: 0.5000 - Train Acc: 90.00%",
    ]


def test_plot_adapter_headless(tmp_path):
    adapter = PlotAdapter(tmp_path, enable_plots=True)
    adapter.on_epoch(1, {"loss": 1.0, "accuracy": 0.4})
    adapter.on_epoch(2, {"loss": 0.5, "accuracy": 0.8})
    assert adapter.close() == tmp_path / "training_plots.png"
    assert (tmp_path / "training_plots.png").exists()

    disabled = PlotAdapter(tmp_path / "off")
    disabled.on_epoch(1, {"loss": 1.0})
    assert disabled.close() is None
    assert not (tmp_path / "off").exists()


def test_plot_training_history_writes_png(tmp_path):
    path = plot_training_history([1.0, 0.5], [0.2, 0.9], tmp_path / "nested" / "curve.png")
    assert path.exists()


def test_summary(tmp_path):
    stats = summarise_history([3.0, 2.0, 1.0], tail=2)
    assert stats == {"min": 1.0, "max": 3.0, "mean": 2.0, "last": 1.0, "tail_mean": 1.5}
    assert summarise_history([]) == {}
    path = write_summary(
        tmp_path / "summary.json",
        losses=[1.0, 0.5],
        accuracies=[0.5, 1.0],
        final_accuracy=0.75,
        class_names=["a", "b"],
        steps=4,
    )
    summary = json.loads(open(path).read())
    assert summary["epochs"] == 2 and summary["steps"] == 4
    assert summary["class_names"] == ["a", "b"]

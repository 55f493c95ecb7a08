"""Web API routes for GifCut."""

import json
import logging
import queue
import threading
import uuid
from dataclasses import asdict
from pathlib import Path

from flask import Blueprint, Response, current_app, jsonify, request, send_file

from gifcut import ffutil
from gifcut.engine import detect, export
from gifcut.manifest import Manifest, SilenceConfig, convert_option_from_dict
from gifcut.models import ConvertStatus, TimelineError

logger = logging.getLogger(__name__)

bp = Blueprint("web", __name__)

# In-memory job store: job_id -> job dict
_jobs: dict[str, dict] = {}

_BUSY = ("detecting", "processing")


def _get_job(job_id: str):
    job = _jobs.get(job_id)
    if job is None:
        return None, (jsonify({"error": "Job not found"}), 404)
    return job, None


def _session_payload(job: dict) -> dict:
    session = job["session"]
    return {
        "duration": session.duration,
        "current_index": session.current_index,
        "blocks": [asdict(b) for b in session.blocks],
    }


@bp.route("/api/upload", methods=["POST"])
def upload():
    if "file" not in request.files:
        return jsonify({"error": "No file provided"}), 400

    f = request.files["file"]
    if not f.filename:
        return jsonify({"error": "Empty filename"}), 400

    job_id = uuid.uuid4().hex[:12]
    job_dir = Path(current_app.config["WORK_DIR"]) / job_id
    job_dir.mkdir(parents=True, exist_ok=True)

    ext = Path(f.filename).suffix or ".mp4"
    input_path = job_dir / f"input{ext}"
    f.save(input_path)

    _jobs[job_id] = {
        "dir": job_dir,
        "input_path": input_path,
        "filename": f.filename,
        "status": "uploaded",
        "probe": None,
        "session": None,
    }

    return jsonify({"job_id": job_id, "filename": f.filename})


@bp.route("/api/jobs/<job_id>/inspect", methods=["POST"])
def inspect(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err

    result = ffutil.inspect_file(job["input_path"])
    if result is None:
        job["status"] = "invalid"
        return jsonify({"error": "Input file is not a usable video"}), 422

    job["probe"] = result
    job["status"] = "inspected"
    return jsonify(asdict(result))


@bp.route("/api/jobs/<job_id>/detect", methods=["POST"])
def detect_silence(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["status"] in _BUSY:
        return jsonify({"error": f"Job is already {job['status']}"}), 409
    if job["probe"] is None:
        return jsonify({"error": "Inspect the file before detecting silence"}), 409

    body = request.get_json(silent=True) or {}
    try:
        config = SilenceConfig(**body)
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    manifest = Manifest(
        input=job["input_path"],
        output=job["dir"] / "output.gif",
        silence=config,
    )
    job["status"] = "detecting"
    try:
        job["session"] = detect(manifest, probe_result=job["probe"])
    except (ffutil.InvalidMediaError, RuntimeError) as e:
        job["status"] = "error"
        job["error"] = str(e)
        return jsonify({"error": str(e)}), 422
    except Exception as e:
        logger.exception("Silence detection failed for job %s", job_id)
        job["status"] = "error"
        job["error"] = str(e) or type(e).__name__
        return jsonify({"error": job["error"]}), 500
    job["status"] = "detected"
    job["error"] = None
    return jsonify(_session_payload(job))


@bp.route("/api/jobs/<job_id>/blocks")
def get_blocks(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["session"] is None:
        return jsonify({"error": "No blocks detected yet"}), 409
    return jsonify(_session_payload(job))


@bp.route("/api/jobs/<job_id>/blocks/<int:index>", methods=["PATCH"])
def edit_block(job_id: str, index: int):
    job, err = _get_job(job_id)
    if err:
        return err
    session = job["session"]
    if session is None:
        return jsonify({"error": "No blocks detected yet"}), 409

    body = request.get_json(silent=True) or {}
    changes = {}
    if "active" in body:
        changes["active"] = bool(body["active"])
    if "label" in body:
        changes["label"] = str(body["label"])
    if "color" in body:
        changes["color"] = str(body["color"])
    if "end" in body:
        try:
            changes["end"] = float(body["end"])
        except (TypeError, ValueError):
            return jsonify({"error": f"Invalid block end: {body['end']!r}"}), 400

    try:
        session.edit(index, **changes)
        session.select(index)
    except TimelineError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_session_payload(job))


@bp.route("/api/jobs/<job_id>/blocks/<int:index>/merge", methods=["POST"])
def merge_block(job_id: str, index: int):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["session"] is None:
        return jsonify({"error": "No blocks detected yet"}), 409
    try:
        job["session"].merge_with_next(index)
    except TimelineError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(_session_payload(job))


@bp.route("/api/jobs/<job_id>/convert", methods=["POST"])
def start_convert(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["status"] in _BUSY:
        return jsonify({"error": f"Job is already {job['status']}"}), 409

    body = request.get_json(silent=True) or {}
    output_path = job["dir"] / "output.gif"
    try:
        option = convert_option_from_dict(body, output_path)
    except (TypeError, ValueError) as e:
        return jsonify({"error": str(e)}), 400

    session = job["session"]
    if session is not None and not session.active_segments():
        return jsonify({"error": "No active blocks selected"}), 400

    manifest = Manifest(input=job["input_path"], output=output_path, convert=option)

    progress_queue: queue.Queue = queue.Queue()
    cancel_event = threading.Event()
    job["progress_queue"] = progress_queue
    job["cancel_event"] = cancel_event
    job["status"] = "processing"
    job["error"] = None

    def run():
        try:
            def on_progress(status: ConvertStatus):
                progress_queue.put(asdict(status))

            result = export(manifest, session, on_progress=on_progress, cancel_event=cancel_event)
            job["result"] = {
                "output_path": str(result.output_path),
                "blocks_exported": result.blocks_exported,
                "duration_exported": result.duration_exported,
            }
            job["status"] = {"END": "done", "CANCELED": "canceled"}.get(result.status, "error")
            job["error"] = result.message if result.status == "ERROR" else None
        except Exception as e:
            logger.exception("Export failed for job %s", job_id)
            job["status"] = "error"
            job["error"] = str(e)
        finally:
            progress_queue.put(None)  # sentinel

    threading.Thread(target=run, daemon=True).start()
    return jsonify({"status": "started"})


@bp.route("/api/jobs/<job_id>/cancel", methods=["POST"])
def cancel(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["status"] != "processing":
        return jsonify({"error": "No export in progress"}), 409
    job["cancel_event"].set()
    return jsonify({"status": "canceling"})


@bp.route("/api/jobs/<job_id>/progress")
def progress_stream(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err

    q = job.get("progress_queue")
    if q is None:
        return jsonify({"error": "No processing in progress"}), 409

    def generate():
        while True:
            try:
                msg = q.get(timeout=120)
            except queue.Empty:
                yield "data: {\"error\": \"timeout\"}\n\n"
                break
            if msg is None:
                if job["status"] == "error":
                    data = json.dumps({"error": job["error"]})
                else:
                    data = json.dumps({"status": job["status"], "result": job.get("result")})
                yield f"data: {data}\n\n"
                break
            yield f"data: {json.dumps(msg)}\n\n"

    return Response(generate(), mimetype="text/event-stream")


@bp.route("/api/jobs/<job_id>/result")
def download_result(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err
    if job["status"] != "done":
        return jsonify({"error": "Job not complete"}), 409

    output_path = Path(job["result"]["output_path"])
    return send_file(output_path, mimetype="image/gif", as_attachment=False)


@bp.route("/api/jobs/<job_id>/status")
def job_status(job_id: str):
    job, err = _get_job(job_id)
    if err:
        return err

    resp = {"status": job["status"], "filename": job.get("filename")}
    if job["status"] == "done":
        resp["result"] = job.get("result")
    if job["status"] == "error":
        resp["error"] = job.get("error")
    return jsonify(resp)

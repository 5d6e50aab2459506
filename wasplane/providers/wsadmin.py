"""
Ejecutor: una invocación de wsadmin (o sh para las herramientas del producto) por script.

Nunca reintenta y nunca lanza por fallos del intérprete: devuelve un ExecutionResult
clasificado (Success / Recoverable / Fatal) con la salida combinada stdout+stderr.
"""

import getpass
import os
import shlex
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from wasplane.core.classifier import Classifier
from wasplane.core.infra.contracts import ExecutionContext, ExecutionResult, FailureReason, Outcome
from wasplane.core.script import Dialect, Script, redact


def wsadmin_command(script_path: Path, context: ExecutionContext) -> List[str]:
    """Línea de comandos de wsadmin en modo Jython desde el perfil del contexto."""
    cmd = [str(Path(context.profile_dir) / "bin" / "wsadmin.sh"), "-lang", "jython"]
    if context.wsadmin_user:
        cmd += ["-user", context.wsadmin_user]
    if context.wsadmin_pass:
        cmd += ["-password", context.wsadmin_pass]
    cmd += ["-f", str(script_path)]
    return cmd


def as_user(cmd: List[str], user: Optional[str]) -> List[str]:
    """Envuelve el comando con su si hay que ejecutarlo como otro usuario del sistema."""
    if not user or user == getpass.getuser():
        return cmd
    return ["su", user, "-s", "/bin/sh", "-c", shlex.join(cmd)]


def mask_secrets(cmd: List[str], context: ExecutionContext) -> List[str]:
    """Copia del comando apta para mostrar (sin contraseñas)."""
    secrets = (context.wsadmin_pass, *context.secrets)
    return [redact(part, secrets) for part in cmd]


def _decode(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class WsadminExecutor:
    """Ejecutor real (subprocess). Implementa el contrato Executor."""

    def __init__(self, classifier: Optional[Classifier] = None, console: Optional[Console] = None):
        self.classifier = classifier or Classifier()
        self.console = console

    def _run(self, cmd: List[str], context: ExecutionContext) -> Tuple[Optional[int], str, bool]:
        """Ejecuta el comando; retorna (código, salida combinada, timeout)."""
        if self.console:
            self.console.print(f"[dim]$ {escape(shlex.join(mask_secrets(cmd, context)))}[/dim]")
        try:
            r = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=context.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            return None, _decode(e.stdout) + _decode(e.stderr), True
        except OSError as e:
            return 127, f"No se pudo lanzar {cmd[0]}: {e}", False
        return r.returncode, (r.stdout or "") + (r.stderr or ""), False

    def _classify(self, status: Optional[int], output: str, timed_out: bool, context: ExecutionContext,
                  script: Optional[Script] = None) -> ExecutionResult:
        if timed_out:
            return ExecutionResult(
                output,
                None,
                Outcome.FATAL,
                FailureReason.TIMEOUT,
                f"El intérprete no terminó en {context.timeout}s",
            )
        classifier = self.classifier.extended(context.signatures)
        if script is None:
            return classifier.classify(output, status)
        return classifier.classify(output, status, script.expect, script.expect_hint)

    def execute(self, script: Script, context: ExecutionContext) -> ExecutionResult:
        """Escribe el script a un archivo temporal y lo ejecuta exactamente una vez."""
        suffix = ".sh" if script.dialect == Dialect.SHELL else ".py"
        fd, name = tempfile.mkstemp(prefix="wasplane_", suffix=suffix)
        path = Path(name)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(script.render())
            # Puede contener contraseñas: solo legible por quien lo ejecuta
            path.chmod(0o600)
            if script.dialect == Dialect.SHELL:
                cmd = ["sh", str(path)]
            else:
                cmd = wsadmin_command(path, context)
            wrapped = as_user(cmd, context.user)
            if wrapped is not cmd:
                try:
                    shutil.chown(path, user=context.user)
                except (LookupError, OSError) as e:
                    status, output, timed_out = 126, f"No se pudo ceder {path} a {context.user}: {e}", False
                    return self._classify(status, output, timed_out, context, script)
            status, output, timed_out = self._run(wrapped, context)
        finally:
            path.unlink(missing_ok=True)
        return self._classify(status, output, timed_out, context, script)

    def query(self, argv: List[str], context: ExecutionContext) -> ExecutionResult:
        """Comando de solo lectura (listados de managesdk)."""
        status, output, timed_out = self._run(as_user(list(argv), context.user), context)
        return self._classify(status, output, timed_out, context)

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text


def _util_style(percent: float) -> str:
    if percent > 70:
        return "red"
    if percent > 40:
        return "yellow"
    return "green"


class Dashboard:
    def __init__(self, sim):
        self.sim = sim

    def _header(self) -> Text:
        d = self.sim.dispatcher
        header = Text()
        header.append("ServerFarm - Load Balancer Simulator\n", style="bold blue")
        header.append(f"Cycle: {self.sim.cycle}/{self.sim.config.cycles} | ")
        header.append(f"Servers: {d.worker_count()} | ")
        header.append(f"Queue: {d.queue_size()} ({d.queue_utilization():.1f}%) | ")
        header.append(f"Processed: {d.total_processed()} | ")
        header.append("Auto-gen: ")
        header.append("ON" if self.sim.auto_generate else "OFF", style="yellow")
        if d.is_overloaded():
            header.append("\n*** SYSTEM OVERLOADED ***", style="bold red")
        return header

    def _format_worker_row(self, worker):
        util = worker.utilization()
        return (
            str(worker.id),
            worker.address,
            f"{worker.load}/{worker.capacity}",
            Text(f"{util:5.1f}%", style=_util_style(util)),
            str(worker.completed_count),
            "Yes" if worker.active else Text("No", style="red"),
        )

    def workers_table(self) -> Table:
        table = Table(expand=False)
        for column in ("Server", "Address", "Load", "Util", "Processed", "Active"):
            table.add_column(column)
        for worker in self.sim.dispatcher.workers:
            table.add_row(*self._format_worker_row(worker))
        return table

    def render(self):
        controls = Text("a: add request | s: toggle auto-gen | b: block last origin | q: quit", style="dim")
        return Group(self._header(), self.workers_table(), Panel(controls, title="Controls", expand=False))

    def status_panel(self, status) -> Panel:
        """Panel for a status snapshot taken by the simulator."""
        lines = [
            f"Active Servers: {status['active_servers']}",
            f"Queue Size: {status['queue_size']}",
            f"Total Processed: {status['total_processed']}",
            f"System Utilization: {status['system_utilization']:.1f}%",
            f"Queue Utilization: {status['queue_utilization']:.1f}%",
        ]
        if status["overloaded"]:
            lines.append("[bold red]*** SYSTEM OVERLOADED ***[/]")
        return Panel("\n".join(lines), title=f"Cycle {status['cycle']} Status", expand=False)

    def summary_panel(self, summary) -> Panel:
        lines = [
            f"Total requests processed: {summary['total_processed']}",
            f"Average processing time: {summary['avg_processing_time']:.2f} cycles",
            f"Final system utilization: {summary['system_utilization']:.1f}%",
            f"Final queue size: {summary['queue_size']}",
            f"Requests discarded on scale-down: {summary['total_discarded']}",
            "",
            "Server Statistics:",
        ]
        lines.extend(f"  {line}" for line in summary["server_stats"])
        return Panel(Text("\n".join(lines)), title="Simulation Complete", expand=False)

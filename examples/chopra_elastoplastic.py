from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from sdof_simulator.config.loader import load_solver_config
from sdof_simulator.core.engine import response_diagnostics
from sdof_simulator.worker import SolverFailure, run_simulation, submit_solver


def main():
    project_root = Path(__file__).resolve().parents[1]
    cfg_path = project_root / "configs" / "chopra_example_5_5.yml"
    params = load_solver_config(cfg_path)

    response = run_simulation(params)
    print(response.to_dataframe().to_string(index=False, float_format=lambda x: f"{x:10.6f}"))

    diag = response_diagnostics(response)
    print(f"\nPeak displacement: {diag['u_peak']:.6f} in at t = {diag['t_peak']:.2f} s")
    print(f"Residual offset after unloading: {response.final_state.offset:.6f} in")

    # Damping sweep on a thread pool
    ratios = [0.0, 0.02, 0.05, 0.10, 0.20]
    with ThreadPoolExecutor(max_workers=4) as pool:
        futures = [submit_solver({**params, "damping_ratio": z}, pool) for z in ratios]
        results = [f.result() for f in futures]

    print("\n zeta    u_max [in]")
    for z, res in zip(ratios, results):
        if isinstance(res, SolverFailure):
            print(f"{z:5.2f}    failed: {res.error_message}")
        else:
            print(f"{z:5.2f}    {res.bounds['displacement']['max']:.6f}")


if __name__ == "__main__":
    main()

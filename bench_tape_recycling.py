"""
Tape recycling benchmark: repeated gradient calls of a small tanh MLP
through one call site, with slot recycling on vs. off.
"""

import argparse
import time
import numpy as np

from tapegrad import EngineConfig, grad, ops


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Tape recycling on vs. off',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument('--layers', type=str, default='100,50,10',
                       help='Comma-separated layer widths (input first)')
    parser.add_argument('--batch', type=int, default=32,
                       help='Batch size')
    parser.add_argument('--calls', type=int, default=200,
                       help='Gradient calls per configuration')
    parser.add_argument('--seed', type=int, default=0,
                       help='RNG seed')
    return parser.parse_args()


def parse_layers(layer_str):
    """Parse '100,50,10' into [100, 50, 10]."""
    return [int(w) for w in layer_str.split(',') if w.strip()]


def create_params(widths, rng):
    """Weights and biases of a dense tanh network."""
    params = []
    for n_in, n_out in zip(widths[:-1], widths[1:]):
        params.append({
            'W': rng.standard_normal((n_in, n_out)) / np.sqrt(n_in),
            'b': np.zeros(n_out),
        })
    return params


def mlp_loss(params, x, y):
    h = x
    for i, layer in enumerate(params):
        h = h @ layer['W'] + layer['b']
        if i < len(params) - 1:
            h = ops.tanh(h)
    diff = h - y
    return ops.mean(diff * diff)


def run(params, x, y, calls, recycle):
    """Time `calls` gradient evaluations; return (seconds, last grads, call site)."""
    df = grad(mlp_loss, config=EngineConfig(recycle=recycle))
    grads = None
    t0 = time.perf_counter()
    for _ in range(calls):
        grads, _ = df(params, x, y)
    return time.perf_counter() - t0, grads, df


def grads_equal(ga, gb):
    return all(
        np.array_equal(la[k], lb[k])
        for la, lb in zip(ga, gb)
        for k in la
    )


def main():
    """Main comparison."""
    args = parse_args()
    widths = parse_layers(args.layers)
    rng = np.random.default_rng(args.seed)

    params = create_params(widths, rng)
    x = rng.standard_normal((args.batch, widths[0]))
    y = rng.standard_normal((args.batch, widths[-1]))

    print("="*70)
    print("Tape recycling benchmark")
    print(f"Layers: {widths}  Batch: {args.batch}  Calls: {args.calls}")
    print("="*70)

    print("\n[Recycling ON]")
    t_on, g_on, df_on = run(params, x, y, args.calls, recycle=True)
    print(f"  {t_on:.3f}s ({1e3 * t_on / args.calls:.3f} ms/call), idle tapes kept: {df_on.pool.idle}")

    print("\n[Recycling OFF]")
    t_off, g_off, _ = run(params, x, y, args.calls, recycle=False)
    print(f"  {t_off:.3f}s ({1e3 * t_off / args.calls:.3f} ms/call)")

    print("\n[Results]")
    print(f"  Speedup: {t_off / t_on:.2f}x")
    print(f"  Gradients identical: {'Yes' if grads_equal(g_on, g_off) else 'No'}")
    print("="*70)


if __name__ == "__main__":
    main()

import argparse
import json
import os
import sys

from memory_mosaic.utils.image_processing import build_mosaic_configurations, load_reference_pixels

DEFAULT_TARGET_CELLS = 1200


def main(args):
    parser = argparse.ArgumentParser(
        description="Pre-generate the mosaic configuration of every render mode from a reference portrait."
    )
    parser.add_argument("image", help="Path to the reference portrait", type=str)
    parser.add_argument("-o", "--output-dir", help="Directory for the <mode>.json files", type=str, default=".")
    parser.add_argument("-i", "--reference-image-id", help="Identifier stored with the configurations", type=str)
    parser.add_argument(
        "-n", "--target-cells", help="Approximate number of cells", type=int, default=DEFAULT_TARGET_CELLS
    )
    parser.add_argument("--max-size", help="Shrink larger images to this size before sampling", type=int, default=None)
    args = parser.parse_args(args)

    with open(args.image, "rb") as file:
        pixels = load_reference_pixels(file.read(), args.max_size)
    reference_image_id = args.reference_image_id or os.path.basename(args.image)
    configurations = build_mosaic_configurations(pixels, reference_image_id, args.target_cells)

    os.makedirs(args.output_dir, exist_ok=True)
    for mode, configuration in configurations.items():
        output_path = os.path.join(args.output_dir, f"{mode.value}.json")
        with open(output_path, "w") as file:
            json.dump(configuration.to_serializable(), file)
        print(f"{mode.value}: {configuration.grid_width}x{configuration.grid_height} cells -> {output_path}")


if __name__ == "__main__":
    main(sys.argv[1:])

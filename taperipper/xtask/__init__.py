"""Developer tasks: firmware builds, image builds, PE sections and QEMU runs."""
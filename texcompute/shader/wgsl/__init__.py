# The wgsl snippets in this directory can be included in kernel code using
# {$ include 'texcompute.<name>.wgsl' $}
